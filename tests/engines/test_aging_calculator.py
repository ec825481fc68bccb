"""
Tests for the Aging Calculator.

Covers:
- Days past due
- Bucket classification at every boundary
- Report totals per bucket and per counterparty
- Exclusion of settled and overpaid documents
- Single-currency enforcement
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from ledger_engines.aging import (
    CURRENT,
    DAYS_30,
    DAYS_60,
    DAYS_90,
    OVER_90,
    STANDARD_BUCKETS,
    AgeBucket,
    AgingCalculator,
    AgingDocument,
)
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import CurrencyMismatchError

AS_OF = date(2026, 3, 1)


def _doc(due_date, amount, counterparty=None, currency="USD", number="BILL-000001"):
    return AgingDocument(
        document_id=uuid4(),
        document_number=number,
        counterparty_id=counterparty,
        due_date=due_date,
        amount_due=Money.of(amount, currency),
    )


class TestDaysPastDue:
    """Tests for age calculation."""

    def setup_method(self):
        self.calculator = AgingCalculator()

    def test_days_after_due_date(self):
        """Counts whole days from due date to as-of date."""
        assert self.calculator.days_past_due(date(2026, 1, 15), AS_OF) == 45

    def test_not_yet_due_is_negative(self):
        """A due date in the future gives a negative age."""
        assert self.calculator.days_past_due(date(2026, 3, 11), AS_OF) == -10

    def test_due_today_is_zero(self):
        """Due on the as-of date is zero days past due."""
        assert self.calculator.days_past_due(AS_OF, AS_OF) == 0


class TestClassification:
    """Tests for bucket boundaries."""

    def setup_method(self):
        self.calculator = AgingCalculator()

    @pytest.mark.parametrize(
        "days, expected",
        [
            (-30, CURRENT),
            (0, CURRENT),
            (1, DAYS_30),
            (30, DAYS_30),
            (31, DAYS_60),
            (45, DAYS_60),
            (60, DAYS_60),
            (61, DAYS_90),
            (90, DAYS_90),
            (91, OVER_90),
            (400, OVER_90),
        ],
    )
    def test_standard_boundaries(self, days, expected):
        """Each boundary day lands in the documented bucket."""
        assert self.calculator.classify(days).name == expected

    def test_gap_in_custom_buckets_raises(self):
        """An age not covered by any custom bucket is rejected."""
        buckets = (AgeBucket("Due", None, 0), AgeBucket("Late", 10, None))
        with pytest.raises(ValueError):
            self.calculator.classify(5, buckets)

    def test_inverted_bucket_rejected(self):
        """A bucket whose max is below its min cannot be built."""
        with pytest.raises(ValueError):
            AgeBucket("Broken", 10, 5)


class TestAgingReport:
    """Tests for report generation."""

    def setup_method(self):
        self.calculator = AgingCalculator()

    def test_bill_45_days_late_in_60_day_bucket(self):
        """A 200.00 bill due 2026-01-15 sits in 60 Days on 2026-03-01."""
        report = self.calculator.build_aging_report(
            documents=[_doc(date(2026, 1, 15), "200.00")],
            as_of_date=AS_OF,
        )

        assert report.items[0].days_past_due == 45
        assert report.bucket_totals[DAYS_60] == Money.of("200.00", "USD")
        for name in (CURRENT, DAYS_30, DAYS_90, OVER_90):
            assert report.bucket_totals[name].is_zero
        assert report.total == Money.of("200.00", "USD")
        assert report.total_overdue == Money.of("200.00", "USD")

    def test_settled_and_overpaid_documents_skipped(self):
        """Documents with nothing outstanding are left out."""
        report = self.calculator.build_aging_report(
            documents=[
                _doc(date(2026, 2, 1), "0"),
                _doc(date(2026, 2, 1), "-50.00"),
                _doc(date(2026, 2, 1), "75.00"),
            ],
            as_of_date=AS_OF,
        )

        assert len(report.items) == 1
        assert report.total == Money.of("75.00", "USD")

    def test_rows_per_counterparty(self):
        """Amounts are totalled per counterparty and per bucket."""
        vendor_a, vendor_b = uuid4(), uuid4()
        report = self.calculator.build_aging_report(
            documents=[
                _doc(date(2026, 3, 10), "100.00", vendor_a),
                _doc(date(2026, 1, 1), "40.00", vendor_a),
                _doc(date(2025, 10, 1), "10.00", vendor_b),
            ],
            as_of_date=AS_OF,
        )

        row_a = report.row_for(vendor_a)
        assert row_a.current == Money.of("100.00", "USD")
        assert row_a.days_60 == Money.of("40.00", "USD")
        assert row_a.total == Money.of("140.00", "USD")
        assert report.row_for(vendor_b).over_90 == Money.of("10.00", "USD")
        assert report.row_for(uuid4()) is None

    def test_total_overdue_excludes_current(self):
        """Overdue total is everything outside the Current bucket."""
        report = self.calculator.build_aging_report(
            documents=[
                _doc(date(2026, 3, 5), "30.00"),
                _doc(date(2026, 2, 20), "20.00"),
            ],
            as_of_date=AS_OF,
        )

        assert report.total == Money.of("50.00", "USD")
        assert report.total_overdue == Money.of("20.00", "USD")
        assert [i.document.document_number for i in report.items_in_bucket(DAYS_30)] == ["BILL-000001"]

    def test_empty_input(self):
        """No documents gives an all-zero report."""
        report = self.calculator.build_aging_report(documents=[], as_of_date=AS_OF, currency="EUR")

        assert report.currency == "EUR"
        assert report.total.is_zero
        assert report.rows == ()

    def test_mixed_currencies_rejected(self):
        """Documents in another currency cannot share a report."""
        with pytest.raises(CurrencyMismatchError):
            self.calculator.build_aging_report(
                documents=[_doc(date(2026, 1, 1), "10.00"), _doc(date(2026, 1, 1), "10.00", currency="EUR")],
                as_of_date=AS_OF,
            )

    def test_zero_decimal_currency(self):
        """Whole-unit currencies age the same way."""
        report = self.calculator.build_aging_report(
            documents=[_doc(date(2026, 2, 15), "150000", currency="UGX")],
            as_of_date=AS_OF,
        )

        assert report.bucket_totals[DAYS_30] == Money.of("150000", "UGX")


_amounts = st.decimals(min_value=Decimal("-100"), max_value=Decimal("100000"), places=2)
_offsets = st.integers(min_value=-60, max_value=400)


class TestAgingPartition:
    """Property tests: buckets partition the outstanding total."""

    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    @given(entries=st.lists(st.tuples(_offsets, _amounts), max_size=25))
    def test_buckets_sum_to_total(self, entries):
        """Bucket totals always add up to the total of positive balances."""
        documents = [_doc(AS_OF - timedelta(days=offset), amount) for offset, amount in entries]
        report = AgingCalculator().build_aging_report(documents=documents, as_of_date=AS_OF, currency="USD")

        expected = sum((Decimal(a) for _, a in entries if a > 0), Decimal("0"))
        assert report.total.amount == expected
        assert sum((m.amount for m in report.bucket_totals.values()), Decimal("0")) == expected
        assert sum((r.total.amount for r in report.rows), Decimal("0")) == expected

    @settings(max_examples=300)
    @given(days=st.integers(min_value=-1000, max_value=10_000))
    def test_every_age_in_exactly_one_bucket(self, days):
        """Standard buckets are disjoint and cover every age."""
        matches = [b for b in STANDARD_BUCKETS if b.contains(days)]
        assert len(matches) == 1
