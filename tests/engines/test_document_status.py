"""
Tests for invoice and bill status derivation.
"""

from datetime import date
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ledger_engines.document_status import (
    BillStatus,
    DocumentStatusInputs,
    InvoiceStatus,
    derive_bill_status,
    derive_invoice_status,
)

DUE = date(2026, 1, 10)
BEFORE_DUE = date(2026, 1, 5)
AFTER_DUE = date(2026, 1, 20)


def _inputs(total="1000", paid="0", today=BEFORE_DUE, **flags):
    return DocumentStatusInputs(
        total_amount=Decimal(total),
        amount_paid=Decimal(paid),
        due_date=DUE,
        today=today,
        **flags,
    )


class TestInvoiceStatus:
    """Tests for derive_invoice_status."""

    def test_new_invoice_is_draft(self):
        """Unsent, unpaid, not yet due."""
        assert derive_invoice_status(_inputs()) is InvoiceStatus.DRAFT

    def test_sent(self):
        """Sent and nothing else."""
        assert derive_invoice_status(_inputs(sent=True)) is InvoiceStatus.SENT

    def test_viewed_wins_over_sent(self):
        """A viewed invoice reports VIEWED."""
        assert derive_invoice_status(_inputs(sent=True, viewed=True)) is InvoiceStatus.VIEWED

    def test_partial_before_due(self):
        """Part paid and not yet due."""
        assert derive_invoice_status(_inputs(paid="400", sent=True)) is InvoiceStatus.PARTIAL

    def test_partial_past_due_is_overdue(self):
        """Part paid after the due date is OVERDUE."""
        assert derive_invoice_status(_inputs(paid="400", today=AFTER_DUE)) is InvoiceStatus.OVERDUE

    def test_unpaid_past_due_is_overdue_even_unsent(self):
        """Past due with nothing paid is OVERDUE whatever the flags."""
        assert derive_invoice_status(_inputs(today=AFTER_DUE)) is InvoiceStatus.OVERDUE

    def test_due_today_is_not_overdue(self):
        """Overdue starts the day after the due date."""
        assert derive_invoice_status(_inputs(today=DUE, sent=True)) is InvoiceStatus.SENT

    def test_paid_in_full(self):
        """amount_paid == total is PAID, past due or not."""
        assert derive_invoice_status(_inputs(paid="1000", today=AFTER_DUE)) is InvoiceStatus.PAID

    def test_overpaid_is_paid(self):
        """Overpayment still derives PAID."""
        assert derive_invoice_status(_inputs(paid="1200")) is InvoiceStatus.PAID

    def test_zero_total_is_paid(self):
        """A zero-total document has nothing to collect."""
        assert derive_invoice_status(_inputs(total="0")) is InvoiceStatus.PAID

    def test_cancelled_wins(self):
        """Cancellation overrides every other input."""
        assert derive_invoice_status(_inputs(paid="1000", cancelled=True)) is InvoiceStatus.CANCELLED


class TestBillStatus:
    """Tests for derive_bill_status."""

    @pytest.mark.parametrize(
        "kwargs, expected",
        [
            ({}, BillStatus.DRAFT),
            ({"submitted": True}, BillStatus.PENDING),
            ({"submitted": True, "paid": "10"}, BillStatus.PARTIAL),
            ({"paid": "10", "today": AFTER_DUE}, BillStatus.OVERDUE),
            ({"today": AFTER_DUE}, BillStatus.OVERDUE),
            ({"paid": "1000"}, BillStatus.PAID),
            ({"cancelled": True, "paid": "10"}, BillStatus.CANCELLED),
        ],
    )
    def test_derivation_table(self, kwargs, expected):
        """Each row of the bill status table."""
        assert derive_bill_status(_inputs(**kwargs)) is expected

    def test_invoice_flags_ignored(self):
        """sent/viewed do not affect bills."""
        assert derive_bill_status(_inputs(sent=True, viewed=True)) is BillStatus.DRAFT


_money = st.decimals(min_value=Decimal("0"), max_value=Decimal("1000000"), places=2)
_day = st.dates(min_value=date(2025, 1, 1), max_value=date(2027, 12, 31))


class TestStatusDeterminism:
    """Property tests: identical inputs give identical status."""

    @settings(max_examples=300)
    @given(
        total=_money, paid=_money, due=_day, today=_day,
        cancelled=st.booleans(), sent=st.booleans(), viewed=st.booleans(), submitted=st.booleans(),
    )
    def test_same_inputs_same_status(self, total, paid, due, today, cancelled, sent, viewed, submitted):
        """Derivation is a pure function of its inputs."""
        first = DocumentStatusInputs(total, paid, due, today, cancelled, sent, viewed, submitted)
        second = DocumentStatusInputs(total, paid, due, today, cancelled, sent, viewed, submitted)

        assert derive_invoice_status(first) is derive_invoice_status(second)
        assert derive_bill_status(first) is derive_bill_status(second)

    @settings(max_examples=200)
    @given(total=_money, paid=_money, due=_day, today=_day)
    def test_paid_iff_covered(self, total, paid, due, today):
        """An uncancelled document is PAID exactly when payments cover the total."""
        status = derive_invoice_status(DocumentStatusInputs(total, paid, due, today))
        assert (status is InvoiceStatus.PAID) == (paid >= total)
