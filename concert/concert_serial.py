# concert/concert_serial.py
import os
from typing import List, Optional

import serial
import serial.tools.list_ports

from logger import get_logger
from .concert_errors import TransportError, ReadTimeoutError

logger = get_logger(__name__)

# pyserial opens the device first, then applies termios settings and wraps any
# failure there in a SerialException with this prefix
_CONFIGURE_FAILED = "Could not configure port"


def _is_configure_failure(exc: Exception) -> bool:
    return str(exc).startswith(_CONFIGURE_FAILED)


class ConcertSerial:
    """
    Blocking serial link to a Concert payment terminal.

    Design notes:
    - One object is one device handle. Open it, use it from a single thread, close it.
    - Each of open / write / read / close maps onto exactly one pyserial call; there is
      no buffering and no retry here. Callers that want retries layer them on top.
    - Usable as a context manager; the port is released on every exit path.
    """

    # === Line settings fixed by the protocol ===
    BAUD_RATE = 9600
    BYTESIZE  = serial.EIGHTBITS
    PARITY    = serial.PARITY_NONE
    STOPBITS  = serial.STOPBITS_ONE

    def __init__(self, port: str, *, read_timeout: Optional[float] = None,
                 write_timeout: Optional[float] = None):
        """
        Parameters
        ----------
        port : str
            Device path, e.g. '/dev/tty.usbmodem1' or '/dev/ttyACM0'.
        read_timeout : float | None
            Seconds to wait for the first byte of a read. None blocks forever.
        write_timeout : float | None
            Seconds a write may block. None blocks forever.
        """
        self.port = port
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.serial_port: Optional[serial.Serial] = None

    @property
    def is_open(self) -> bool:
        return bool(self.serial_port and self.serial_port.is_open)

    # ---------- lifecycle ----------
    def open(self) -> "ConcertSerial":
        """
        Open the device read/write in raw 9600 8N1 mode without flow control.

        pyserial's POSIX backend always sets CLOCAL|CREAD and clears the canonical,
        echo and signal flags, which is the raw local line the terminal expects.
        """
        if not self.port:
            raise TransportError(TransportError.OP_OPEN, "no device path given")
        try:
            self.serial_port = serial.Serial(
                self.port, self.BAUD_RATE,
                bytesize=self.BYTESIZE, parity=self.PARITY, stopbits=self.STOPBITS,
                timeout=self.read_timeout, write_timeout=self.write_timeout,
                xonxoff=False, rtscts=False, dsrdtr=False,
            )
        except ValueError as exc:
            # pyserial validates settings before touching the device
            logger.error(f"Error configuring serial port {self.port}: {exc}")
            raise TransportError(TransportError.OP_CONFIGURE, exc) from exc
        except (serial.SerialException, OSError) as exc:
            if _is_configure_failure(exc):
                logger.error(f"Error configuring serial port {self.port}: {exc}")
                raise TransportError(TransportError.OP_CONFIGURE, exc) from exc
            logger.error(f"Error opening serial port {self.port}: {exc}")
            raise TransportError(TransportError.OP_OPEN, exc) from exc

        logger.info(f"Serial port {self.port} opened successfully")
        return self

    def close(self) -> None:
        if not self.is_open:
            raise TransportError(TransportError.OP_CLOSE, "device is not open")
        try:
            self.serial_port.close()
        except (serial.SerialException, OSError) as exc:
            logger.error(f"Error closing serial port {self.port}: {exc}")
            raise TransportError(TransportError.OP_CLOSE, exc) from exc
        finally:
            self.serial_port = None
        logger.info(f"Serial port {self.port} closed")

    def __enter__(self) -> "ConcertSerial":
        if not self.is_open:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.close()
            return False
        # The body already failed; its error is the one the caller needs to see.
        try:
            self.close()
        except TransportError as close_exc:
            logger.error(f"Also failed to close {self.port} after {exc_type.__name__}: {close_exc}")
        return False

    # ---------- I/O ----------
    def write(self, data: bytes) -> int:
        """Write `data` with one call. Returns the byte count the driver reports."""
        self._require_open(TransportError.OP_WRITE)
        try:
            written = self.serial_port.write(data)
        except (serial.SerialException, OSError) as exc:
            logger.error(f"Error writing to serial port {self.port}: {exc}")
            raise TransportError(TransportError.OP_WRITE, exc) from exc

        if written is None:
            written = len(data)
        logger.debug(f"Wrote {written} bytes to serial port: {bytes(data).hex()}")
        return written

    def read(self, max_bytes: int = 1) -> bytes:
        """
        Block until at least one byte arrives, then return up to `max_bytes`.

        Raises ReadTimeoutError when a read timeout is configured and nothing came in.
        """
        if max_bytes < 1:
            raise ValueError("max_bytes must be at least 1")
        self._require_open(TransportError.OP_READ)
        try:
            data = self.serial_port.read(1)
            if not data:
                logger.error(f"No data from serial port {self.port} within {self.read_timeout}s")
                raise ReadTimeoutError(self.read_timeout)
            extra = min(self.serial_port.in_waiting, max_bytes - 1)
            if extra > 0:
                data += self.serial_port.read(extra)
        except (serial.SerialException, OSError) as exc:
            logger.error(f"Error reading from serial port {self.port}: {exc}")
            raise TransportError(TransportError.OP_READ, exc) from exc

        logger.debug(f"Read {len(data)} bytes from serial port: {data.hex()}")
        return data

    def _require_open(self, operation: str) -> None:
        if not self.is_open:
            raise TransportError(operation, "device is not open")

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"<{self.__class__.__name__} {self.port} {state}>"


def list_serial_devices(pattern: str = "tty.usbmodem", max_devices: Optional[int] = None) -> List[str]:
    """
    Return device paths whose node name contains `pattern`, sorted by path.

    Symlinked nodes are included, terminals often show up only as a link.
    """
    devices = sorted(
        port.device
        for port in serial.tools.list_ports.comports(include_links=True)
        if pattern in os.path.basename(port.device)
    )
    if max_devices is not None:
        devices = devices[:max_devices]
    logger.debug(f"Found {len(devices)} serial device(s) matching '{pattern}'")
    return devices
