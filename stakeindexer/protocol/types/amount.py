# MIT License
# Copyright (c) 2025 Hashborn

"""
Arbitrary-precision value types for reward arithmetic.

Amount      - signed quantity of the native unit
Percentage  - fraction expressed in the 0-100 range

Both wrap a Decimal, are immutable, and raise RewardArithmeticError on any
value that is not a finite number. Arithmetic runs in a context of
REWARD_CONFIG.decimal_precision significant digits with InvalidOperation and
DivisionByZero trapped, so a bad division can never yield a silent zero.
"""

from decimal import (
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    ROUND_HALF_EVEN,
)
from functools import total_ordering
from typing import Any, Union

from pydantic_core import core_schema

from ..config import economic_model
from .common import RewardArithmeticError

Numeric = Union["Amount", "Percentage", Decimal, int, str]

HUNDRED = Decimal(100)


def reward_context() -> Context:
    return Context(
        prec=economic_model.REWARD_CONFIG.decimal_precision,
        rounding=ROUND_HALF_EVEN,
        traps=[InvalidOperation, DivisionByZero, Overflow],
    )


def to_decimal(value: Any) -> Decimal:
    """
    Parse a value into a finite Decimal.

    Accepts Amount/Percentage, Decimal, int and numeric strings. Floats are
    rejected: they have already lost precision by the time they get here.
    """
    if isinstance(value, _DecimalValue):
        return value.value
    if isinstance(value, bool) or value is None:
        raise RewardArithmeticError(f"not a numeric value: {value!r}")
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int):
        parsed = Decimal(value)
    elif isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation:
            raise RewardArithmeticError(f"not a numeric value: {value!r}") from None
    elif isinstance(value, float):
        raise RewardArithmeticError(f"float values are not accepted: {value!r}")
    else:
        raise RewardArithmeticError(f"not a numeric value: {value!r}")

    if not parsed.is_finite():
        raise RewardArithmeticError(f"not a finite value: {value!r}")
    return parsed


def format_decimal(value: Decimal) -> str:
    """Plain notation, no exponent, no trailing zeros."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


def quo(dividend: Any, divisor: Any) -> Decimal:
    ctx = reward_context()
    a, b = to_decimal(dividend), to_decimal(divisor)
    if b == 0:
        raise RewardArithmeticError(f"division by zero: {format_decimal(a)} / 0")
    try:
        return ctx.divide(a, b)
    except (InvalidOperation, DivisionByZero, Overflow) as e:
        raise RewardArithmeticError(f"cannot divide {a} by {b}: {e!r}") from e


def mul(a: Any, b: Any) -> Decimal:
    try:
        return reward_context().multiply(to_decimal(a), to_decimal(b))
    except (InvalidOperation, Overflow) as e:
        raise RewardArithmeticError(f"cannot multiply {a} by {b}: {e!r}") from e


def add(a: Any, b: Any) -> Decimal:
    try:
        return reward_context().add(to_decimal(a), to_decimal(b))
    except (InvalidOperation, Overflow) as e:
        raise RewardArithmeticError(f"cannot add {a} and {b}: {e!r}") from e


def sub(a: Any, b: Any) -> Decimal:
    try:
        return reward_context().subtract(to_decimal(a), to_decimal(b))
    except (InvalidOperation, Overflow) as e:
        raise RewardArithmeticError(f"cannot subtract {b} from {a}: {e!r}") from e


@total_ordering
class _DecimalValue:
    __slots__ = ("_value",)

    def __init__(self, value: Any = 0):
        object.__setattr__(self, "_value", to_decimal(value))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def value(self) -> Decimal:
        return self._value

    @classmethod
    def parse(cls, value: Any):
        if isinstance(value, cls):
            return value
        return cls(value)

    def is_zero(self) -> bool:
        return self._value == 0

    def __str__(self) -> str:
        return format_decimal(self._value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}('{self}')"

    def __eq__(self, other) -> bool:
        if isinstance(other, _DecimalValue):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, (Decimal, int)) and not isinstance(other, bool):
            return self._value == other
        return NotImplemented

    def __lt__(self, other) -> bool:
        if isinstance(other, _DecimalValue):
            return self._value < other._value
        if isinstance(other, (Decimal, int)) and not isinstance(other, bool):
            return self._value < other
        return NotImplemented

    def __hash__(self) -> int:
        # Equal to the bare Decimal / int, so it must hash like one
        return hash(self._value)

    def __reduce__(self):
        return (type(self), (self._value,))

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type, handler):
        # Parse failures surface as RewardArithmeticError, not ValidationError
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


class Amount(_DecimalValue):
    """Quantity of the native unit (nanomina on mainnet)."""

    __slots__ = ()

    def __add__(self, other: Numeric) -> "Amount":
        return Amount(add(self, other))

    def __sub__(self, other: Numeric) -> "Amount":
        return Amount(sub(self, other))

    def __mul__(self, other: Numeric) -> "Amount":
        return Amount(mul(self, other))

    __rmul__ = __mul__

    def __truediv__(self, other: Numeric) -> "Amount":
        return Amount(quo(self, other))

    def __neg__(self) -> "Amount":
        return Amount(-self._value)


class Percentage(_DecimalValue):
    """Percentage in the 0-100 range. Use fraction() before combining with an Amount."""

    __slots__ = ()

    def fraction(self) -> Decimal:
        return quo(self._value, HUNDRED)

    def complement(self) -> "Percentage":
        """100 - self, e.g. the delegators' share of a validator fee."""
        return Percentage(sub(HUNDRED, self._value))


def total(values) -> Decimal:
    """Sum at reward precision (the builtin sum() runs at the default 28 digits)."""
    result = Decimal(0)
    for value in values:
        result = add(result, value)
    return result
