"""
Money -- exact conversion between decimal amounts and integer minor units.

Responsibility:
    Converts a human-facing decimal currency amount (``150.50``) into an
    exact integer count of minor units (``15050``) and back.  This is the
    only place in the kernel where amounts change representation.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Imported by the
    write guard (encode) and by selectors/DTOs (decode).

Invariants enforced:
    - No binary floating-point multiply or divide on the money path.  All
      arithmetic runs in ``decimal`` under a private context, so the
      process-global decimal context cannot alter results.
    - Rounding happens exactly once, at the encode boundary, using
      ROUND_HALF_UP (halves round away from zero).  decode never rounds.
    - ``decode(encode(x)) == x`` for every ``x`` with at most two
      fractional digits.
    - A ``float`` input is read through its shortest round-trip repr, so
      ``encode(0.1 + 0.2) == 30`` and ``encode(100.555) == 10056`` even
      though neither value is exactly representable in binary.

Failure modes:
    - InvalidAmountError for non-finite (NaN, Infinity), non-numeric,
      boolean, or out-of-precision input, and for non-integer minor units.

Range checks (positivity, maximum) are the caller's job; the codec
accepts negatives and zero.
"""

from __future__ import annotations

from decimal import (
    ROUND_HALF_UP,
    Context,
    Decimal,
    DivisionByZero,
    Inexact,
    InvalidOperation,
    Overflow,
)
from typing import Union

from expense_kernel.exceptions import InvalidAmountError

AmountLike = Union[Decimal, int, str, float]

# Two fractional digits: 1 major unit = 100 minor units
MINOR_UNIT_DECIMAL_PLACES = 2
MONEY_PRECISION = 34

_ONE = Decimal(1)


def _exact_context() -> Context:
    """Context that refuses to silently round: any inexact result traps."""
    return Context(
        prec=MONEY_PRECISION,
        rounding=ROUND_HALF_UP,
        traps=[InvalidOperation, Inexact, Overflow, DivisionByZero],
    )


def _rounding_context() -> Context:
    """Context for the single half-up rounding step at the encode boundary."""
    return Context(
        prec=MONEY_PRECISION,
        rounding=ROUND_HALF_UP,
        traps=[InvalidOperation, Overflow, DivisionByZero],
    )


def to_decimal(amount: AmountLike) -> Decimal:
    """
    Read an amount into a finite Decimal without binary rounding error.

    Raises:
        InvalidAmountError: If the value is not a finite number.
    """
    if isinstance(amount, bool):
        raise InvalidAmountError(amount, "booleans are not amounts")
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, int):
        value = Decimal(amount)
    elif isinstance(amount, float):
        # repr() is the shortest string that round-trips to the same float
        value = Decimal(repr(amount))
    elif isinstance(amount, str):
        try:
            value = Decimal(amount.strip())
        except InvalidOperation:
            raise InvalidAmountError(amount, "not a decimal number") from None
    else:
        raise InvalidAmountError(amount, f"unsupported type {type(amount).__name__}")

    if not value.is_finite():
        raise InvalidAmountError(amount, "amount must be finite")
    return value


class MoneyCodec:
    """
    Lossless, deterministic decimal <-> minor unit codec.

    Contract:
        ``encode`` multiplies by 10**decimal_places exactly and rounds once
        (ROUND_HALF_UP) to an ``int``.  ``decode`` divides exactly and
        returns a Decimal carrying ``decimal_places`` fractional digits.

    Guarantees:
        - Deterministic and side-effect free.
        - Independent of the thread's current decimal context.

    Non-goals:
        - Does NOT validate business ranges (positive, maximum).
        - Does NOT know about currencies; the minor unit is fixed.
    """

    __slots__ = ("_decimal_places", "_scale", "_exact", "_rounding")

    def __init__(self, decimal_places: int = MINOR_UNIT_DECIMAL_PLACES):
        if decimal_places < 0:
            raise ValueError(f"decimal_places must be >= 0, got {decimal_places}")
        self._decimal_places = decimal_places
        self._scale = Decimal(10) ** decimal_places
        self._exact = _exact_context()
        self._rounding = _rounding_context()

    @property
    def decimal_places(self) -> int:
        return self._decimal_places

    def encode(self, amount: AmountLike) -> int:
        """
        Convert a decimal amount into integer minor units.

        Examples:
            encode(Decimal("150.50")) -> 15050
            encode(100.555)           -> 10056
            encode(100.554)           -> 10055
            encode(0.1 + 0.2)         -> 30

        Raises:
            InvalidAmountError: Non-finite, non-numeric, or too many digits
                to scale exactly.
        """
        value = to_decimal(amount)
        try:
            scaled = self._exact.multiply(value, self._scale)
            minor = scaled.quantize(_ONE, context=self._rounding)
        except (Inexact, InvalidOperation, Overflow) as exc:
            raise InvalidAmountError(amount, "exceeds supported precision") from exc
        return int(minor)

    def decode(self, minor_units: int) -> Decimal:
        """
        Convert integer minor units back into a decimal amount.

        Example:
            decode(15050) -> Decimal("150.50")

        Raises:
            InvalidAmountError: If ``minor_units`` is not an integer.
        """
        if isinstance(minor_units, bool) or not isinstance(minor_units, int):
            raise InvalidAmountError(minor_units, "minor units must be an integer")
        try:
            return Decimal(minor_units).scaleb(-self._decimal_places, context=self._exact)
        except (Inexact, Overflow) as exc:
            raise InvalidAmountError(minor_units, "exceeds supported precision") from exc

    def format(self, amount: Decimal) -> str:
        """Render an amount with exactly ``decimal_places`` digits, e.g. ``"150.50"``."""
        exponent = Decimal(1).scaleb(-self._decimal_places)
        return f"{amount.quantize(exponent, context=self._rounding):f}"


DEFAULT_CODEC = MoneyCodec()


def to_minor_units(amount: AmountLike) -> int:
    """Encode with the default two-digit codec."""
    return DEFAULT_CODEC.encode(amount)


def from_minor_units(minor_units: int) -> Decimal:
    """Decode with the default two-digit codec."""
    return DEFAULT_CODEC.decode(minor_units)


def format_amount(amount: Decimal) -> str:
    """Two-digit display string for a decoded amount."""
    return DEFAULT_CODEC.format(amount)
