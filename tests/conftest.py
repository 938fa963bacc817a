import os
import tempfile

# Keep test runs from writing concert.log into the source tree
os.environ.setdefault("CONCERT_LOG_FILE", os.path.join(tempfile.gettempdir(), "concert-tests.log"))

import pytest
import serial

from concert import concert_serial


class SerialScript:
    """What the fake port should do, and a record of what was done to it."""

    def __init__(self):
        self.replies = bytearray()
        self.fail_on = set()        # any of: open, configure, termios, write, read, close
        self.short_write = None     # report this many bytes written instead of all
        self.events = []            # "open", "write", "read", "close" in call order
        self.written = bytearray()
        self.open_args = None


class FakeSerial:
    def __init__(self, script, port, baudrate, **kwargs):
        self.script = script
        if "configure" in script.fail_on:
            raise ValueError(f"Not a valid baudrate: {baudrate!r}")
        if "termios" in script.fail_on:
            raise serial.SerialException("Could not configure port: (25, 'Inappropriate ioctl for device')")
        if "open" in script.fail_on:
            raise serial.SerialException(f"[Errno 2] could not open port {port}")
        script.open_args = (port, baudrate, kwargs)
        script.events.append("open")
        self.is_open = True

    @property
    def in_waiting(self):
        return len(self.script.replies)

    def write(self, data):
        self.script.events.append("write")
        if "write" in self.script.fail_on:
            raise serial.SerialTimeoutException("Write timeout")
        self.script.written += data
        return len(data) if self.script.short_write is None else self.script.short_write

    def read(self, size=1):
        self.script.events.append("read")
        if "read" in self.script.fail_on:
            raise serial.SerialException("device reports readiness to read but returned no data")
        chunk = bytes(self.script.replies[:size])
        del self.script.replies[:size]
        return chunk

    def close(self):
        self.script.events.append("close")
        self.is_open = False
        if "close" in self.script.fail_on:
            raise OSError(5, "Input/output error")


@pytest.fixture
def serial_script(monkeypatch):
    script = SerialScript()
    monkeypatch.setattr(concert_serial.serial, "Serial",
                        lambda *args, **kwargs: FakeSerial(script, *args, **kwargs))
    return script
