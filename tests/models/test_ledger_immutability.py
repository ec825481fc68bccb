"""
Tests for ORM-level append-only enforcement of ledger history.

Each violating flush leaves the session unusable until rolled back, so
every such test ends with ``session.rollback()``.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.ledger import EntrySide, TransactionStatus
from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.services.transaction_groups import GroupLine


class TestPostedTransactions:
    """Tests for posted and reversed transaction rows."""

    def test_description_frozen(self, session, posted_transaction):
        """Posted descriptions cannot be edited."""
        posted_transaction.description = "Rewritten history"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.code == "IMMUTABILITY_VIOLATION"
        session.rollback()

    def test_amount_frozen(self, session, posted_transaction):
        """Posted amounts cannot be edited."""
        posted_transaction.amount = Decimal("1.00")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_status_cannot_return_to_pending(self, session, posted_transaction):
        """POSTED may only move to REVERSED."""
        posted_transaction.status = TransactionStatus.PENDING
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_posted_cannot_be_deleted(self, session, posted_transaction, captured_logs):
        """Posted rows are never deleted, and the attempt is logged."""
        session.delete(posted_transaction)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        record = next(r for r in captured_logs() if r["message"] == "immutability_violation_blocked")
        assert record["operation"] == "DELETE"
        assert record["entity_type"] == "LedgerTransaction"

    def test_reversed_is_permanent(self, session, posting_engine, posted_transaction, test_actor_id):
        """A reversed row admits no further change."""
        posting_engine.reverse(posted_transaction.id, test_actor_id)

        posted_transaction.reference = "edited"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_audit_fields_may_change(self, session, posted_transaction, test_actor_id):
        """updated_by_id is audit metadata, not history."""
        posted_transaction.updated_by_id = test_actor_id
        session.flush()

    def test_pending_rows_are_editable(self, session, posting_engine, cash, owner_equity, test_actor_id):
        """Drafts can still be corrected and deleted."""
        txn = posting_engine.create_transaction(
            transaction_date=date(2026, 1, 20), description="Draft", amount=Decimal("5.00"),
            currency="USD", actor_id=test_actor_id,
            debit_account_id=cash.id, credit_account_id=owner_equity.id,
        )
        txn.description = "Corrected draft"
        session.flush()
        session.delete(txn)
        session.flush()


class TestPostedGroups:
    """Tests for posted journal entries."""

    def test_posted_group_frozen(self, session, group_manager, office_supplies, cash, test_actor_id):
        """A posted group's description cannot change and it cannot be deleted."""
        group = group_manager.create_group(
            description="Supplies", group_date=date(2026, 1, 20),
            lines=[
                GroupLine(office_supplies.id, EntrySide.DEBIT, Decimal("20.00")),
                GroupLine(cash.id, EntrySide.CREDIT, Decimal("20.00")),
            ],
            actor_id=test_actor_id, currency="USD",
        )
        group_manager.post_group(group.id, test_actor_id)

        group.description = "Other"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()


class TestAccountStructure:
    """Tests for structural fields of accounts with posted history."""

    @pytest.mark.parametrize("field, value", [("currency", "EUR"), ("ledger_group", "LIABILITY")])
    def test_structural_fields_frozen(self, session, posted_transaction, cash, field, value):
        """Currency and ledger group are fixed once posted."""
        setattr(cash, field, value)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_name_still_editable(self, session, posted_transaction, cash):
        """Presentation fields remain editable."""
        cash.name = "Cash on hand"
        session.flush()
