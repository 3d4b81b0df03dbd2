"""
Tests for the Money value type.

Covers integer-only construction, clamped and strict subtraction,
half-up rounding for percentages and halves, and display formatting.
"""

from decimal import Decimal

import pytest

from core.money import Money, is_cents


class TestMoneyConstruction:
    """Tests for Money construction."""

    def test_accepts_integer_cents(self):
        """Should store integer cents as-is."""
        assert Money(18000).cents == 18000

    @pytest.mark.parametrize("value", [10.5, Decimal("10"), "100", None, True])
    def test_rejects_non_integer_cents(self, value):
        """Floats, decimals, strings, None and bools are not cents."""
        with pytest.raises(TypeError, match="integer cents"):
            Money(value)

    def test_zero(self):
        """Money.zero() should be zero and not positive."""
        zero = Money.zero()

        assert zero.is_zero is True
        assert zero.is_positive is False

    def test_is_cents_excludes_bool(self):
        """is_cents should accept ints but not bools."""
        assert is_cents(0) is True
        assert is_cents(-5) is True
        assert is_cents(False) is False
        assert is_cents(1.0) is False


class TestMoneyArithmetic:
    """Tests for Money arithmetic."""

    def test_add(self):
        """Adding two amounts sums their cents."""
        assert Money(5000) + Money(250) == Money(5250)

    def test_subtract(self):
        """Strict subtraction returns the difference."""
        assert Money(18000) - Money(5000) == Money(13000)

    def test_subtract_refuses_negative(self):
        """Strict subtraction raises rather than going below zero."""
        with pytest.raises(ValueError, match="would go negative"):
            Money(100) - Money(300)

    def test_subtract_clamped_floors_at_zero(self):
        """Clamped subtraction floors at zero."""
        assert Money(100).subtract_clamped(Money(300)) == Money(0)
        assert Money(300).subtract_clamped(Money(100)) == Money(200)

    def test_add_rejects_non_money(self):
        """Adding a plain int is a type error."""
        with pytest.raises(TypeError):
            Money(100) + 5

    def test_min(self):
        """min() returns the smaller amount."""
        assert Money(5000).min(Money(3000)) == Money(3000)
        assert Money(2000).min(Money(3000)) == Money(2000)

    def test_ordering(self):
        """Money values compare by cents."""
        assert Money(100) < Money(200)
        assert max(Money(100), Money(300), Money(200)) == Money(300)


class TestMoneyRounding:
    """Tests for percentage and half rounding."""

    def test_percentage(self):
        """20% of $180.00 is $36.00."""
        assert Money(18000).percentage(20) == Money(3600)

    def test_percentage_rounds_half_up(self):
        """12.5 cents rounds up to 13."""
        assert Money(125).percentage(10) == Money(13)

    def test_percentage_rounds_down_below_half(self):
        """33% of 101 cents is 33.33, which rounds to 33."""
        assert Money(101).percentage(33) == Money(33)

    def test_half_rounds_half_up(self):
        """Half of an odd amount rounds up."""
        assert Money(18001).half() == Money(9001)
        assert Money(18000).half() == Money(9000)

    def test_percentage_accepts_decimal(self):
        """Decimal percentages are supported."""
        assert Money(10000).percentage(Decimal("12.5")) == Money(1250)


class TestMoneyFormat:
    """Tests for display formatting."""

    @pytest.mark.parametrize(
        "cents,expected",
        [
            (0, "$0.00"),
            (5, "$0.05"),
            (5000, "$50.00"),
            (13050, "$130.50"),
            (123456789, "$1234567.89"),
        ],
    )
    def test_format(self, cents, expected):
        """Amounts render as dollars with two decimals."""
        assert Money(cents).format() == expected

    def test_str_matches_format(self):
        """str() is the display format."""
        assert str(Money(5000)) == "$50.00"
