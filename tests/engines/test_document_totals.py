"""
Tests for invoice and bill totals.
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from ledger_engines.document_totals import LineAmounts, compute_bill_totals, compute_invoice_totals
from ledger_kernel.domain.values import Money


class TestInvoiceTotals:
    """Tests for compute_invoice_totals."""

    def test_single_line_no_tax(self):
        """Total is quantity times price."""
        totals = compute_invoice_totals(
            lines=[LineAmounts(Decimal("4"), Decimal("250.00"))], currency="USD"
        )

        assert totals.subtotal == Money.of("1000.00", "USD")
        assert totals.total_amount == Money.of("1000.00", "USD")
        assert totals.tax_amount.is_zero

    def test_discount_applied_before_tax(self):
        """Tax is charged on the discounted line amount."""
        totals = compute_invoice_totals(
            lines=[LineAmounts(Decimal("1"), Decimal("100.00"), Decimal("10"), Decimal("20"))],
            currency="USD",
        )

        assert totals.subtotal == Money.of("100.00", "USD")
        assert totals.discount_amount == Money.of("20.00", "USD")
        assert totals.tax_amount == Money.of("8.00", "USD")
        assert totals.total_amount == Money.of("88.00", "USD")

    def test_rounding_half_up_on_aggregates(self):
        """Sums are rounded once, half-up, to minor units."""
        totals = compute_invoice_totals(
            lines=[
                LineAmounts(Decimal("1"), Decimal("0.10"), Decimal("5")),
                LineAmounts(Decimal("1"), Decimal("0.10"), Decimal("5")),
                LineAmounts(Decimal("1"), Decimal("0.10"), Decimal("5")),
            ],
            currency="USD",
        )

        # 3 * 0.005 = 0.015 -> 0.02
        assert totals.tax_amount == Money.of("0.02", "USD")
        assert totals.total_amount == Money.of("0.32", "USD")

    def test_zero_decimal_currency(self):
        """JPY totals carry no fraction digits."""
        totals = compute_invoice_totals(
            lines=[LineAmounts(Decimal("3"), Decimal("333"), Decimal("10"))], currency="JPY"
        )

        assert totals.tax_amount.amount == Decimal("100")
        assert totals.total_amount.amount == Decimal("1099")

    def test_no_lines(self):
        """An invoice without lines totals zero."""
        totals = compute_invoice_totals(lines=[], currency="USD")
        assert totals.total_amount.is_zero


class TestBillTotals:
    """Tests for compute_bill_totals."""

    def test_discount_ignored(self):
        """Bills never discount, even if a line carries a percentage."""
        totals = compute_bill_totals(
            lines=[LineAmounts(Decimal("2"), Decimal("50.00"), Decimal("10"), Decimal("50"))],
            currency="USD",
        )

        assert totals.discount_amount.is_zero
        assert totals.tax_amount == Money.of("10.00", "USD")
        assert totals.total_amount == Money.of("110.00", "USD")


_line = st.builds(
    LineAmounts,
    quantity=st.decimals(min_value=Decimal("0.01"), max_value=Decimal("1000"), places=2),
    unit_price=st.decimals(min_value=Decimal("0"), max_value=Decimal("10000"), places=2),
    tax_rate=st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=2),
    discount_percent=st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=2),
)


class TestTotalsArithmetic:
    """Property tests for the totals identity."""

    @settings(max_examples=200)
    @given(lines=st.lists(_line, max_size=10))
    def test_total_is_subtotal_minus_discount_plus_tax(self, lines):
        """The printed parts always add up to the total."""
        totals = compute_invoice_totals(lines=lines, currency="USD")

        assert totals.total_amount == totals.subtotal - totals.discount_amount + totals.tax_amount
        for part in (totals.subtotal, totals.discount_amount, totals.tax_amount, totals.total_amount):
            assert part.round() == part

    @settings(max_examples=100)
    @given(lines=st.lists(_line, max_size=10))
    def test_discount_never_exceeds_subtotal(self, lines):
        """Discounts are capped by the line amounts they apply to."""
        totals = compute_invoice_totals(lines=lines, currency="USD")
        assert totals.discount_amount.amount <= totals.subtotal.amount
