"""
Minor-unit money value type.

All amounts are integer cents. Arithmetic never touches floats: percentages
and halves go through Decimal with ROUND_HALF_UP, so 12.5 cents rounds to 13
the same way on every platform.

Usage:
    from core.money import Money

    total = Money(18000)
    refunded = Money(5000)

    remaining = total.subtract_clamped(refunded)  # Money(13000)
    discount = total.percentage(20)               # Money(3600)
    print(remaining.format())                     # "$130.00"
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


@dataclass(frozen=True, order=True)
class Money:
    """
    Represents an amount in cents.

    Attributes:
        cents: Amount in the smallest currency unit

    Example:
        Money(5000) + Money(250)        # Money(5250)
        Money(100).subtract_clamped(Money(300))  # Money(0)
    """

    cents: int

    def __post_init__(self) -> None:
        # bool is an int subclass; True cents is always a bug
        if not is_cents(self.cents):
            raise TypeError(
                f"Money requires integer cents, got {type(self.cents).__name__}"
            )

    @classmethod
    def zero(cls) -> Money:
        return cls(0)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents + other.cents)

    def __sub__(self, other: Money) -> Money:
        """Subtract, refusing to produce a negative amount."""
        if not isinstance(other, Money):
            return NotImplemented
        result = self.cents - other.cents
        if result < 0:
            raise ValueError(
                f"Subtracting {other.format()} from {self.format()} would go negative"
            )
        return Money(result)

    def subtract_clamped(self, other: Money) -> Money:
        """Subtract, flooring the result at zero."""
        return Money(max(0, self.cents - other.cents))

    def percentage(self, percent: int | Decimal) -> Money:
        """Return ``percent``% of this amount, rounded half up to the cent."""
        value = Decimal(self.cents) * Decimal(percent) / Decimal(100)
        return Money(int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP)))

    def half(self) -> Money:
        """Return half of this amount, rounded half up to the cent."""
        value = Decimal(self.cents) / Decimal(2)
        return Money(int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP)))

    def min(self, other: Money) -> Money:
        return self if self.cents <= other.cents else other

    @property
    def is_zero(self) -> bool:
        return self.cents == 0

    @property
    def is_positive(self) -> bool:
        return self.cents > 0

    def format(self) -> str:
        """Format for user-facing messages (e.g. '$50.00')."""
        sign = "-" if self.cents < 0 else ""
        dollars, cents = divmod(abs(self.cents), 100)
        return f"{sign}${dollars}.{cents:02d}"

    def __str__(self) -> str:
        return self.format()

    def __repr__(self) -> str:
        return f"Money(cents={self.cents})"


def is_cents(value: object) -> bool:
    """True for a plain int amount (bools excluded)."""
    return isinstance(value, int) and not isinstance(value, bool)
