# concert/concert_codec.py
from dataclasses import astuple, dataclass
from functools import reduce

from .concert_errors import CorruptFrameError
from .concert_fields import (
    FIELD_SPECS,
    PAYLOAD_LENGTH,
    INDICATOR_DO_NOT_INCLUDE,
    MODE_BANK_CARD,
    TYPE_CREDIT,
    PRIVATE_EMPTY,
    DELAY_NOW,
    AUTHORIZATION_AUTO,
    validate_fields,
)

# === Frame markers ===
STX = 0x02  # start of text, first byte of every frame
ETX = 0x03  # end of text, closes the checksum span

# STX + payload + ETX + LRC
FRAME_LENGTH = 1 + PAYLOAD_LENGTH + 1 + 1


@dataclass(frozen=True)
class TransactionRequest:
    """One payment request, field values exactly as they go on the wire."""
    cash_register_id: str
    amount: str
    indicator: str = INDICATOR_DO_NOT_INCLUDE
    mode: str = MODE_BANK_CARD
    transaction_type: str = TYPE_CREDIT
    currency: str = "978"
    private_data: str = PRIVATE_EMPTY
    delay: str = DELAY_NOW
    authorization: str = AUTHORIZATION_AUTO

    def fields(self) -> tuple:
        return astuple(self)


def lrc(data: bytes) -> int:
    """Longitudinal redundancy check: XOR of every byte, seeded with 0."""
    return reduce(lambda acc, byte: acc ^ byte, data, 0)


def encode(request: TransactionRequest) -> bytes:
    """
    Build the 37-byte frame for `request`.

    Layout
    ------
        [STX] cash_register_id amount indicator mode type currency
              private_data delay authorization [ETX] [LRC]

    The LRC covers everything after STX up to and including ETX. Fields are
    validated first, in wire order, so an invalid request raises the error of
    its first bad field and nothing is built.
    """
    values = request.fields()
    validate_fields(values)

    span = "".join(values).encode("ascii") + bytes([ETX])
    frame = bytes([STX]) + span + bytes([lrc(span)])
    return frame


def decode(frame: bytes) -> TransactionRequest:
    """Parse a frame back into a request, checking markers, LRC and field rules."""
    frame = bytes(frame)
    if len(frame) != FRAME_LENGTH:
        raise CorruptFrameError(f"expected {FRAME_LENGTH} bytes, got {len(frame)}", frame)
    if frame[0] != STX:
        raise CorruptFrameError(f"missing STX (got 0x{frame[0]:02X})", frame)
    if frame[-2] != ETX:
        raise CorruptFrameError(f"missing ETX (got 0x{frame[-2]:02X})", frame)

    span = frame[1:-1]
    expected = lrc(span)
    if frame[-1] != expected:
        raise CorruptFrameError(f"LRC mismatch (got 0x{frame[-1]:02X}, expected 0x{expected:02X})", frame)

    try:
        payload = span[:-1].decode("ascii")
    except UnicodeDecodeError as exc:
        raise CorruptFrameError(f"non-ASCII payload ({exc.reason})", frame) from exc

    values = []
    offset = 0
    for spec in FIELD_SPECS:
        values.append(payload[offset:offset + spec.length])
        offset += spec.length

    validate_fields(values)
    return TransactionRequest(*values)
