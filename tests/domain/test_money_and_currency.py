"""
Tests for Money, the currency registry and the ledger sign convention.
"""

from decimal import Decimal

import pytest

from ledger_kernel.domain.currency import CurrencyRegistry, fits_minor_units, round_money
from ledger_kernel.domain.ledger import EntrySide, LedgerGroup, signed_delta
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import CurrencyMismatchError, InvalidCurrencyError


class TestCurrencyRegistry:
    """Tests for ISO 4217 lookups."""

    def test_validate_normalizes_case(self):
        """Codes are upper-cased and stripped."""
        assert CurrencyRegistry.validate(" usd ") == "USD"

    def test_unknown_code_rejected(self):
        """Unknown codes raise InvalidCurrencyError."""
        with pytest.raises(InvalidCurrencyError) as exc_info:
            CurrencyRegistry.validate("XYZ")
        assert exc_info.value.code == "INVALID_CURRENCY"

    @pytest.mark.parametrize("code, places", [("USD", 2), ("UGX", 0), ("JPY", 0), ("BHD", 3)])
    def test_minor_units(self, code, places):
        """Decimal places follow the ISO table."""
        assert CurrencyRegistry.get_decimal_places(code) == places

    def test_fits_minor_units(self):
        """Amounts with too many fraction digits do not fit."""
        assert fits_minor_units(Decimal("10.25"), "USD")
        assert not fits_minor_units(Decimal("10.255"), "USD")
        assert not fits_minor_units(Decimal("10.5"), "UGX")
        assert fits_minor_units(Decimal("10.255"), "BHD")

    def test_round_half_up(self):
        """Rounding is half-up."""
        assert round_money(Decimal("2.345"), "USD") == Decimal("2.35")
        assert round_money(Decimal("2.5"), "JPY") == Decimal("3")


class TestMoney:
    """Tests for the Money value object."""

    def test_float_rejected(self):
        """Floats are never accepted as amounts."""
        with pytest.raises(TypeError):
            Money(10.5, "USD")

    def test_of_parses_strings(self):
        """Money.of builds exact decimals from strings."""
        assert Money.of("0.10", "usd") == Money(Decimal("0.10"), "USD")

    def test_arithmetic_same_currency(self):
        """Addition and subtraction keep the currency."""
        total = Money.of("10.00", "USD") + Money.of("2.50", "USD") - Money.of("0.50", "USD")
        assert total == Money.of("12.00", "USD")

    def test_mixing_currencies_fails(self):
        """Combining currencies raises CurrencyMismatchError."""
        with pytest.raises(CurrencyMismatchError):
            Money.of("1", "USD") + Money.of("1", "EUR")
        with pytest.raises(CurrencyMismatchError):
            Money.of("1", "USD") < Money.of("1", "EUR")

    def test_zero_and_sign(self):
        """Zero and positive predicates."""
        assert Money.zero("EUR").is_zero
        assert Money.of("0.01", "EUR").is_positive
        assert not (-Money.of("0.01", "EUR")).is_positive


class TestSignConvention:
    """Tests for normal balances and signed deltas."""

    @pytest.mark.parametrize(
        "group, side",
        [
            (LedgerGroup.ASSET, EntrySide.DEBIT),
            (LedgerGroup.EXPENSE, EntrySide.DEBIT),
            (LedgerGroup.LIABILITY, EntrySide.CREDIT),
            (LedgerGroup.EQUITY, EntrySide.CREDIT),
            (LedgerGroup.INCOME, EntrySide.CREDIT),
            (LedgerGroup.REVENUE, EntrySide.CREDIT),
        ],
    )
    def test_normal_balance(self, group, side):
        """Each group has its conventional normal side."""
        assert group.normal_balance is side

    def test_revenue_is_income(self):
        """REVENUE behaves as INCOME."""
        assert LedgerGroup.REVENUE.is_income
        assert LedgerGroup.INCOME.is_income
        assert not LedgerGroup.ASSET.is_income

    def test_signed_delta(self):
        """Normal-side legs increase, other-side legs decrease."""
        amount = Decimal("500")
        assert signed_delta(LedgerGroup.ASSET, EntrySide.DEBIT, amount) == amount
        assert signed_delta(LedgerGroup.ASSET, EntrySide.CREDIT, amount) == -amount
        assert signed_delta(LedgerGroup.INCOME, EntrySide.CREDIT, amount) == amount
        assert signed_delta(LedgerGroup.LIABILITY, EntrySide.DEBIT, amount) == -amount

    def test_opposite_side(self):
        """opposite() swaps debit and credit."""
        assert EntrySide.DEBIT.opposite() is EntrySide.CREDIT
        assert EntrySide.CREDIT.opposite() is EntrySide.DEBIT
