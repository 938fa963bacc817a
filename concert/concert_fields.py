# concert/concert_fields.py
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple, Type

from .concert_errors import (
    ValidationError,
    InvalidCashRegisterIdError,
    InvalidAmountError,
    InvalidIndicatorError,
    InvalidModeError,
    InvalidTypeError,
    InvalidCurrencyError,
    InvalidPrivateDataError,
    InvalidDelayError,
    InvalidAuthorizationError,
)

# === Protocol values ===
INDICATOR_INCLUDE        = "1"
INDICATOR_DO_NOT_INCLUDE = "0"

MODE_BANK_CARD = "1"
MODE_CHEQUE    = "C"

TYPE_DEBIT  = "0"
TYPE_CREDIT = "1"

CURRENCY_EUR = "978"
CURRENCY_USD = "840"

PRIVATE_EMPTY = " " * 10

DELAY_LATER = "A010"
DELAY_NOW   = "A011"

AUTHORIZATION_AUTO = "B010"

# Constraint kinds
DIGITS = "digits"   # ASCII 0-9 only
ANY    = "any"      # length check only
CHOICE = "choice"   # must be one of FieldSpec.choices

_DIGIT_CHARS = frozenset("0123456789")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    length: int
    kind: str
    error: Type[ValidationError]
    choices: FrozenSet[str] = frozenset()


# Wire order. Widths add up to the 34 payload bytes of a frame.
FIELD_SPECS: Tuple[FieldSpec, ...] = (
    FieldSpec("cash_register_id", 2,  DIGITS, InvalidCashRegisterIdError),
    FieldSpec("amount",           8,  DIGITS, InvalidAmountError),
    FieldSpec("indicator",        1,  ANY,    InvalidIndicatorError),
    FieldSpec("mode",             1,  CHOICE, InvalidModeError, frozenset({MODE_BANK_CARD, MODE_CHEQUE})),
    FieldSpec("transaction_type", 1,  CHOICE, InvalidTypeError, frozenset({TYPE_DEBIT, TYPE_CREDIT})),
    FieldSpec("currency",         3,  ANY,    InvalidCurrencyError),
    FieldSpec("private_data",     10, ANY,    InvalidPrivateDataError),
    FieldSpec("delay",            4,  CHOICE, InvalidDelayError, frozenset({DELAY_NOW, DELAY_LATER})),
    FieldSpec("authorization",    4,  CHOICE, InvalidAuthorizationError, frozenset({AUTHORIZATION_AUTO})),
)

PAYLOAD_LENGTH = sum(spec.length for spec in FIELD_SPECS)


def _rule_violation(spec: FieldSpec, value) -> Optional[str]:
    """Return why `value` breaks `spec`, or None when it is fine."""
    if value is None:
        return "value is missing"
    if not isinstance(value, str):
        return f"expected str, got {type(value).__name__}"
    if len(value) != spec.length:
        return f"expected {spec.length} characters, got {len(value)}"
    if not value.isascii():
        return "non-ASCII characters"
    if spec.kind == DIGITS and not set(value) <= _DIGIT_CHARS:
        return "digits only"
    if spec.kind == CHOICE and value not in spec.choices:
        return "expected one of " + ", ".join(repr(c) for c in sorted(spec.choices))
    return None


def validate_field(spec: FieldSpec, value) -> str:
    """Check one field against its table entry; raise the field's error on failure."""
    reason = _rule_violation(spec, value)
    if reason is not None:
        raise spec.error(value, reason)
    return value


def validate_fields(values) -> None:
    """
    Validate the nine field values in wire order.

    Fail-fast: the first bad field raises and later fields are not looked at.
    """
    values = tuple(values)
    if len(values) != len(FIELD_SPECS):
        raise ValueError(f"expected {len(FIELD_SPECS)} field values, got {len(values)}")
    for spec, value in zip(FIELD_SPECS, values):
        validate_field(spec, value)
