"""
Values -- Immutable, self-validating monetary value object.

Responsibility:
    Provides ``Money``, the only representation of an amount anywhere in the
    engine. Amounts are signed integer minor units (cents); there is exactly
    one currency per budget.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module.

Invariants enforced:
    - All arithmetic is integer arithmetic on cents. ``float`` is rejected at
      construction, never coerced.
    - Values fit in a signed 64-bit integer.
    - ``parse`` never rounds: fraction digits beyond the second are dropped.

Failure modes:
    - TypeError when constructed from a non-int (including float and bool).
    - InvalidAmountError when the value leaves the signed 64-bit range.
    - InvalidFormatError from ``parse`` on malformed text.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass

from envelope_kernel.exceptions import InvalidAmountError, InvalidFormatError

_MIN_CENTS = -(2**63)
_MAX_CENTS = 2**63 - 1


@dataclass(frozen=True, slots=True, order=True)
class Money:
    """
    Monetary amount in minor units.

    Contract:
        Wraps an ``int`` number of cents. Equality and ordering compare cents
        exactly.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - ``cents`` is always an ``int`` within the signed 64-bit range
        - ``Money.parse(m.format()) == m`` for every ``m``

    Non-goals:
        - Does NOT carry a currency (single-currency budgets only)
        - Does NOT round -- projections that need rounding do it explicitly
    """

    cents: int

    def __post_init__(self) -> None:
        # bool is an int subclass; True cents is never intended
        if isinstance(self.cents, bool) or not isinstance(self.cents, int):
            raise TypeError(
                f"Money requires integer cents, got {type(self.cents).__name__}"
            )
        if not _MIN_CENTS <= self.cents <= _MAX_CENTS:
            raise InvalidAmountError(self.cents, "outside the signed 64-bit range")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_minor_units(cls, cents: int) -> Money:
        """Create an amount from cents (``1050`` is ``$10.50``)."""
        return cls(cents)

    from_cents = from_minor_units

    @classmethod
    def from_units(cls, units: int, cents: int = 0) -> Money:
        """Create an amount from whole units and a cents part."""
        return cls(units * 100 + cents)

    @classmethod
    def zero(cls) -> Money:
        return cls(0)

    @classmethod
    def sum(cls, amounts: Iterable[Money]) -> Money:
        """Sum an iterable of amounts; the empty sum is zero."""
        return cls(sum(m.cents for m in amounts))

    @classmethod
    def parse(cls, text: str) -> Money:
        """
        Parse user-entered text.

        Accepts ``10``, ``10.5``, ``10.50``, ``10.509``, ``-10.50``, ``$10.50``
        and ``-$10.50``. An integer is whole units. A single fraction digit is
        tens of cents; digits after the second are ignored.

        Raises:
            InvalidFormatError: if the text is not one of the forms above.
        """
        if not isinstance(text, str):
            raise InvalidFormatError(repr(text), "money", field="amount")

        s = text.strip()
        negative = s.startswith("-")
        if negative:
            s = s[1:]
        if s and unicodedata.category(s[0]) == "Sc":
            s = s[1:]

        if "." in s:
            whole, _, fraction = s.partition(".")
            if not _is_digits(whole) or (fraction and not _is_digits(fraction)):
                raise InvalidFormatError(text, "money", field="amount")
            if len(fraction) == 0:
                cents_part = 0
            elif len(fraction) == 1:
                cents_part = int(fraction) * 10
            else:
                cents_part = int(fraction[:2])
            cents = int(whole) * 100 + cents_part
        else:
            if not _is_digits(s):
                raise InvalidFormatError(text, "money", field="amount")
            cents = int(s) * 100

        try:
            return cls(-cents if negative else cents)
        except InvalidAmountError:
            raise InvalidFormatError(text, "money", field="amount") from None

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    @property
    def is_zero(self) -> bool:
        return self.cents == 0

    @property
    def is_positive(self) -> bool:
        return self.cents > 0

    @property
    def is_negative(self) -> bool:
        return self.cents < 0

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents + other.cents)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents - other.cents)

    def __neg__(self) -> Money:
        return Money(-self.cents)

    def __abs__(self) -> Money:
        return Money(abs(self.cents))

    @property
    def units(self) -> int:
        """Whole units, truncated toward zero."""
        return abs(self.cents) // 100 * (-1 if self.cents < 0 else 1)

    @property
    def cents_part(self) -> int:
        """The 0..99 fraction of the amount."""
        return abs(self.cents) % 100

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    def format(self, symbol: str = "$") -> str:
        """Render with two fraction digits, e.g. ``-$10.50``."""
        sign = "-" if self.cents < 0 else ""
        return f"{sign}{symbol}{abs(self.cents) // 100}.{self.cents_part:02d}"

    def __str__(self) -> str:
        return self.format()

    def __repr__(self) -> str:
        return f"Money({self.format()!r})"


def _is_digits(s: str) -> bool:
    # str.isdigit() also accepts superscripts and other non-ASCII digits
    return bool(s) and s.isascii() and s.isdigit()
