# concert/concert_errors.py
from typing import Optional


class ConcertError(Exception):
    """Base class for everything raised by the Concert link."""


# ---------- validation ----------
class ValidationError(ConcertError):
    """A request field broke its rule. Raised before any I/O happens."""

    field = "field"

    def __init__(self, value, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {self.field}: {reason} (got {value!r})")


class InvalidCashRegisterIdError(ValidationError):
    field = "cash register id"


class InvalidAmountError(ValidationError):
    field = "amount"


class InvalidIndicatorError(ValidationError):
    field = "indicator"


class InvalidModeError(ValidationError):
    field = "mode"


class InvalidTypeError(ValidationError):
    field = "type"


class InvalidCurrencyError(ValidationError):
    field = "currency"


class InvalidPrivateDataError(ValidationError):
    field = "private data"


class InvalidDelayError(ValidationError):
    field = "delay"


class InvalidAuthorizationError(ValidationError):
    field = "authorization"


# ---------- transport ----------
class TransportError(ConcertError):
    """
    A serial operation failed.

    `operation` names the failing step (one of the OP_* constants) and
    `cause` keeps the underlying exception or message.
    """

    OP_OPEN = "open"
    OP_CONFIGURE = "configure"
    OP_WRITE = "write"
    OP_READ = "read"
    OP_CLOSE = "close"

    def __init__(self, operation: str, cause=None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Serial {operation} failed{detail}")


class ReadTimeoutError(TransportError):
    def __init__(self, timeout: Optional[float]):
        self.timeout = timeout
        super().__init__(TransportError.OP_READ, f"no data within {timeout}s")


# ---------- protocol ----------
class ProtocolError(ConcertError):
    """The terminal answered, but not with what the protocol expects."""

    def __init__(self, expected: bytes, received: bytes, message: Optional[str] = None):
        self.expected = expected
        self.received = received
        super().__init__(message or f"Expected {expected.hex()} from terminal, got {received.hex() or 'nothing'}")


class CorruptFrameError(ProtocolError):
    """A frame failed its length, marker or checksum check."""

    def __init__(self, reason: str, frame: bytes):
        self.reason = reason
        super().__init__(b"", frame, f"Corrupt frame: {reason}")
