from functools import reduce

import pytest

from concert.concert_codec import (
    ETX,
    FRAME_LENGTH,
    STX,
    TransactionRequest,
    decode,
    encode,
    lrc,
)
from concert.concert_errors import (
    CorruptFrameError,
    InvalidAmountError,
    InvalidModeError,
    ValidationError,
)
from concert.concert_fields import DELAY_LATER, INDICATOR_INCLUDE, MODE_CHEQUE, TYPE_DEBIT

REQUEST = TransactionRequest("01", "00012345", "0", "1", "1", "978", " " * 10, "A011", "B010")


def test_known_frame():
    payload = b"01" + b"00012345" + b"0" + b"1" + b"1" + b"978" + b" " * 10 + b"A011" + b"B010"
    assert encode(REQUEST) == b"\x02" + payload + b"\x03" + b"\x07"


def test_frame_shape():
    frame = encode(REQUEST)
    assert len(frame) == FRAME_LENGTH == 37
    assert frame[0] == STX
    assert frame[35] == ETX
    assert frame[36] == reduce(lambda a, b: a ^ b, frame[1:36], 0)


def test_length_does_not_depend_on_content():
    other = TransactionRequest("99", "99999999", INDICATOR_INCLUDE, MODE_CHEQUE, TYPE_DEBIT,
                               "840", "ABCDEFGHIJ", DELAY_LATER, "B010")
    assert len(encode(other)) == len(encode(REQUEST))


def test_encode_is_deterministic():
    assert encode(REQUEST) == encode(TransactionRequest(*REQUEST.fields()))


def test_defaults_match_simple_request():
    request = TransactionRequest(cash_register_id="01", amount="00012599")
    assert request.fields() == ("01", "00012599", "0", "1", "1", "978", " " * 10, "A011", "B010")
    assert encode(request)[-1] == 0x00


def test_invalid_request_builds_nothing():
    bad = TransactionRequest("01", "12599", mode="Z")
    with pytest.raises(InvalidAmountError):
        encode(bad)


def test_later_field_error_when_earlier_ones_are_fine():
    with pytest.raises(InvalidModeError):
        encode(TransactionRequest("01", "00000100", mode="Z"))


def test_lrc():
    assert lrc(b"") == 0
    assert lrc(b"\x01\x02\x04") == 0x07
    assert lrc(b"AB\x03") == 0x00


def test_decode_round_trip():
    assert decode(encode(REQUEST)) == REQUEST


def test_decode_rejects_bad_checksum():
    frame = bytearray(encode(REQUEST))
    frame[-1] ^= 0xFF
    with pytest.raises(CorruptFrameError, match="LRC"):
        decode(bytes(frame))


def test_decode_rejects_flipped_payload_byte():
    frame = bytearray(encode(REQUEST))
    frame[5] = ord("9")
    with pytest.raises(CorruptFrameError):
        decode(bytes(frame))


@pytest.mark.parametrize("mangle, reason", [
    (lambda f: f[:-1], "expected 37 bytes"),
    (lambda f: b"\x01" + f[1:], "STX"),
    (lambda f: f[:35] + b"\x04" + f[36:], "ETX"),
])
def test_decode_rejects_broken_framing(mangle, reason):
    with pytest.raises(CorruptFrameError, match=reason):
        decode(mangle(encode(REQUEST)))


def test_decode_checks_field_rules():
    # Well-framed, correct LRC, but the mode byte is not a known mode
    span = b"01" + b"00012345" + b"0" + b"Z" + b"1" + b"978" + b" " * 10 + b"A011" + b"B010" + b"\x03"
    with pytest.raises(ValidationError):
        decode(b"\x02" + span + bytes([lrc(span)]))
