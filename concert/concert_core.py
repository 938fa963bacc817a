# concert/concert_core.py
import logging
from enum import Enum
from typing import Callable, Optional

from logger import get_logger, log_json
from .concert_codec import TransactionRequest, encode
from .concert_errors import ConcertError, InvalidAmountError, ProtocolError, TransportError
from .concert_fields import CURRENCY_EUR
from .concert_serial import ConcertSerial

logger = get_logger(__name__)

# === Link control bytes ===
ENQ = 0x05  # "are you there?"
ACK = 0x06  # positive answer
NAK = 0x15  # terminal refused the frame

DEFAULT_REGISTER_ID = "01"


class HandshakeState(Enum):
    IDLE = "idle"
    AWAITING_ACK = "awaiting_ack"
    ACKED = "acked"
    FAILED = "failed"


class Handshake:
    """
    One ENQ/ACK round trip on an already open port.

    IDLE -> AWAITING_ACK -> ACKED | FAILED. No retries: a second attempt needs a new
    Handshake. `reply` keeps whatever was read so callers can log it.
    """

    def __init__(self):
        self.state = HandshakeState.IDLE
        self.reply: bytes = b""

    def run(self, port: ConcertSerial) -> bool:
        if self.state is not HandshakeState.IDLE:
            raise RuntimeError(f"Handshake already used (state={self.state.value})")
        try:
            port.write(bytes([ENQ]))
            self.state = HandshakeState.AWAITING_ACK
            self.reply = port.read(1)
        except TransportError:
            self.state = HandshakeState.FAILED
            raise

        if self.reply[:1] != bytes([ACK]):
            self.state = HandshakeState.FAILED
            raise ProtocolError(bytes([ACK]), self.reply[:1])

        self.state = HandshakeState.ACKED
        return True


def device_ping(port: ConcertSerial) -> bool:
    """Probe terminal liveness on an open port. True on ACK, raises otherwise."""
    return Handshake().run(port)


def build_simple_request(amount: int, currency: str = CURRENCY_EUR,
                         register_id: str = DEFAULT_REGISTER_ID) -> TransactionRequest:
    """Immediate bank-card credit of `amount` minor units, no private data, auto authorization."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(amount, "expected a whole number of minor units")
    return TransactionRequest(cash_register_id=register_id, amount=f"{amount:08d}", currency=currency)


def _await_ack(port: ConcertSerial) -> None:
    reply = port.read(1)
    if reply[:1] == bytes([NAK]):
        raise ProtocolError(bytes([ACK]), reply[:1], "Terminal refused the request (NAK)")
    if reply[:1] != bytes([ACK]):
        raise ProtocolError(bytes([ACK]), reply[:1])


def send_request(device: str, request: TransactionRequest, *, wait_for_ack: bool = False,
                 read_timeout: Optional[float] = None, write_timeout: Optional[float] = None,
                 transport_factory: Callable[..., ConcertSerial] = ConcertSerial) -> bytes:
    """
    Encode `request` and push it to the terminal at `device`.

    Sequence: encode -> open -> write -> [read ACK] -> close. Encoding happens first so an
    invalid request never touches the port. Once the port is open it is closed on every
    path. Returns the frame that was written.
    """
    frame = encode(request)

    with transport_factory(device, read_timeout=read_timeout, write_timeout=write_timeout).open() as port:
        written = port.write(frame)
        if written != len(frame):
            raise TransportError(TransportError.OP_WRITE, f"short write: {written} of {len(frame)} bytes")
        if wait_for_ack:
            _await_ack(port)

    log_json(logger, logging.INFO, {
        "event": "request_sent",
        "device": device,
        "register": request.cash_register_id,
        "amount": request.amount,
        "currency": request.currency,
        "frame": frame.hex(),
        "acked": wait_for_ack,
    })
    return frame


def simple_request(device: str, amount: int, currency: str, **kwargs) -> bytes:
    """Send the default bank-card credit for `amount` minor units. See send_request()."""
    return send_request(device, build_simple_request(amount, currency), **kwargs)


class ConcertTerminal:
    """
    A payment terminal bound to one serial device path.

    Each call opens the port, does its exchange and closes it again, so nothing is held
    between calls. Failures are reported through `on_error` and then re-raised unchanged.
    """

    def __init__(self, port: str, *, register_id: str = DEFAULT_REGISTER_ID,
                 read_timeout: Optional[float] = None, write_timeout: Optional[float] = None,
                 wait_for_ack: bool = False,
                 transport_factory: Callable[..., ConcertSerial] = ConcertSerial):
        self.port = port
        self.register_id = register_id
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.wait_for_ack = wait_for_ack
        self._transport_factory = transport_factory

        # Optional UI hooks, called from the calling thread
        self.on_status: Optional[Callable[[str], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None

    @classmethod
    def from_config(cls, config, port: Optional[str] = None, **kwargs) -> "ConcertTerminal":
        """Build a terminal from a TerminalConfig; `port` overrides the configured one."""
        return cls(
            port or config.port_name,
            register_id=config.register_id,
            read_timeout=config.read_timeout,
            write_timeout=config.write_timeout,
            wait_for_ack=config.wait_for_ack,
            **kwargs,
        )

    def ping(self) -> bool:
        """Open the port, run one ENQ/ACK handshake, close the port."""
        try:
            with self._open() as port:
                device_ping(port)
        except ConcertError as exc:
            self._error(f"Ping {self.port} failed: {exc}")
            raise
        self._status(f"Terminal on {self.port} acknowledged")
        return True

    def is_available(self) -> bool:
        """Like ping(), but answers False instead of raising."""
        try:
            return self.ping()
        except ConcertError:
            return False

    def send_request(self, request: TransactionRequest) -> bytes:
        try:
            frame = send_request(
                self.port, request,
                wait_for_ack=self.wait_for_ack,
                read_timeout=self.read_timeout,
                write_timeout=self.write_timeout,
                transport_factory=self._transport_factory,
            )
        except ConcertError as exc:
            self._error(f"Request to {self.port} failed: {exc}")
            raise
        self._status(f"Sent {len(frame)}-byte request to {self.port}")
        return frame

    def simple_request(self, amount: int, currency: str = CURRENCY_EUR) -> bytes:
        try:
            request = build_simple_request(amount, currency, self.register_id)
        except ConcertError as exc:
            self._error(f"Request to {self.port} failed: {exc}")
            raise
        return self.send_request(request)

    def _open(self) -> ConcertSerial:
        return self._transport_factory(
            self.port, read_timeout=self.read_timeout, write_timeout=self.write_timeout
        ).open()

    # --- small helpers ---
    def _status(self, msg: str):
        logger.info(msg)
        if self.on_status:
            self.on_status(msg)

    def _error(self, msg: str):
        logger.error(msg)
        if self.on_error:
            self.on_error(msg)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.port} register={self.register_id}>"
