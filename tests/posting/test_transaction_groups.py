"""
Tests for journal entries posted and reversed as one unit.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from ledger_kernel.domain.ledger import EntrySide, JournalEntryType, TransactionStatus
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AlreadyPostedError,
    GroupNotFoundError,
    InvalidStateTransitionError,
    NotPostedError,
    PostingValidationError,
    TransactionNotFoundError,
    UnbalancedEntryError,
)
from ledger_kernel.models.transaction import LedgerTransaction, LedgerTransactionGroup
from ledger_kernel.services.transaction_groups import GroupLine

TODAY = date(2026, 1, 20)


def _supplies_entry(group_manager, actor_id, office_supplies, cash, amount="500.00"):
    return group_manager.create_group(
        description="Office supplies purchase",
        group_date=TODAY,
        lines=[
            GroupLine(office_supplies.id, EntrySide.DEBIT, Decimal(amount)),
            GroupLine(cash.id, EntrySide.CREDIT, Decimal(amount)),
        ],
        actor_id=actor_id,
        currency="USD",
    )


class TestCreateGroup:
    """Tests for create_group."""

    def test_members_are_numbered_single_entries(self, group_manager, office_supplies, cash, test_actor_id):
        """Each line becomes a PENDING single-entry member."""
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)

        assert group.group_number == "JE-000001"
        assert group.status is TransactionStatus.PENDING
        assert group.balanced
        assert [line.line_number for line in group.lines] == [1, 2]
        assert all(line.journal_entry_type is JournalEntryType.SINGLE_ENTRY for line in group.lines)
        assert all(line.reference == "JE-000001" for line in group.lines)

    def test_unbalanced_rejected(self, group_manager, office_supplies, cash, test_actor_id):
        """Debits must equal credits."""
        with pytest.raises(UnbalancedEntryError) as exc_info:
            group_manager.create_group(
                description="Off by one", group_date=TODAY,
                lines=[
                    GroupLine(office_supplies.id, EntrySide.DEBIT, Decimal("500.00")),
                    GroupLine(cash.id, EntrySide.CREDIT, Decimal("499.00")),
                ],
                actor_id=test_actor_id, currency="USD",
            )
        assert exc_info.value.debits == Decimal("500.00")
        assert exc_info.value.credits == Decimal("499.00")

    def test_single_line_rejected(self, group_manager, cash, test_actor_id):
        """A journal entry needs at least two lines."""
        with pytest.raises(PostingValidationError) as exc_info:
            group_manager.create_group(
                description="Lonely", group_date=TODAY,
                lines=[GroupLine(cash.id, EntrySide.DEBIT, Decimal("1.00"))],
                actor_id=test_actor_id, currency="USD",
            )
        assert exc_info.value.violations == ["journal_entry_requires_two_lines"]

    def test_split_entry(self, group_manager, office_supplies, rent_expense, cash, test_actor_id):
        """Several debits may balance a single credit."""
        group = group_manager.create_group(
            description="Month end", group_date=TODAY,
            lines=[
                GroupLine(office_supplies.id, EntrySide.DEBIT, Decimal("120.00")),
                GroupLine(rent_expense.id, EntrySide.DEBIT, Decimal("880.00")),
                GroupLine(cash.id, EntrySide.CREDIT, Decimal("1000.00")),
            ],
            actor_id=test_actor_id, currency="USD",
        )
        assert group.total_debit == Decimal("1000.00")
        assert group.total_credit == Decimal("1000.00")


    def test_unknown_account_leaves_nothing_behind(self, session, group_manager, cash, test_actor_id):
        """A line naming an unknown account writes no group and no members."""
        with pytest.raises(AccountNotFoundError):
            group_manager.create_group(
                description="Stray account", group_date=TODAY,
                lines=[
                    GroupLine(cash.id, EntrySide.DEBIT, Decimal("5.00")),
                    GroupLine(uuid4(), EntrySide.CREDIT, Decimal("5.00")),
                ],
                actor_id=test_actor_id, currency="USD",
            )

        assert session.execute(select(LedgerTransactionGroup)).scalars().all() == []
        assert session.execute(select(LedgerTransaction)).scalars().all() == []

    def test_non_positive_lines_leave_nothing_behind(self, session, group_manager, office_supplies, cash, test_actor_id):
        """Negative amounts are reported per line before anything is written."""
        with pytest.raises(PostingValidationError) as exc_info:
            group_manager.create_group(
                description="Negative", group_date=TODAY,
                lines=[
                    GroupLine(office_supplies.id, EntrySide.DEBIT, Decimal("-5.00")),
                    GroupLine(cash.id, EntrySide.CREDIT, Decimal("-5.00")),
                ],
                actor_id=test_actor_id, currency="USD",
            )

        assert exc_info.value.violations == ["line_1:amount_not_positive", "line_2:amount_not_positive"]
        assert session.execute(select(LedgerTransactionGroup)).scalars().all() == []
        assert session.execute(select(LedgerTransaction)).scalars().all() == []

    def test_failed_create_does_not_consume_number(self, group_manager, office_supplies, cash, test_actor_id):
        """The next successful entry still gets the first number."""
        with pytest.raises(AccountNotFoundError):
            group_manager.create_group(
                description="Stray account", group_date=TODAY,
                lines=[
                    GroupLine(cash.id, EntrySide.DEBIT, Decimal("5.00")),
                    GroupLine(uuid4(), EntrySide.CREDIT, Decimal("5.00")),
                ],
                actor_id=test_actor_id, currency="USD",
            )

        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)
        assert group.group_number == "JE-000001"


class TestPostAndReverse:
    """Tests for post_group and reverse_group."""

    def test_journal_entry_round_trip(self, group_manager, office_supplies, cash, test_actor_id):
        """Posting moves both accounts, reversing restores them."""
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)

        result = group_manager.post_group(group.id, test_actor_id)

        assert result.status is TransactionStatus.POSTED
        assert office_supplies.balance == Decimal("500.00")
        assert cash.balance == Decimal("-500.00")
        assert all(line.status is TransactionStatus.POSTED for line in group.lines)

        reversal = group_manager.reverse_group(group.id, test_actor_id)

        assert reversal.status is TransactionStatus.REVERSED
        assert len(reversal.reversals) == 2
        assert office_supplies.balance == Decimal("0")
        assert cash.balance == Decimal("0")
        assert all(line.status is TransactionStatus.REVERSED for line in group.lines)

    def test_post_twice_rejected(self, group_manager, office_supplies, cash, test_actor_id):
        """A posted group cannot be posted again."""
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)
        group_manager.post_group(group.id, test_actor_id)

        with pytest.raises(AlreadyPostedError):
            group_manager.post_group(group.id, test_actor_id)
        assert cash.balance == Decimal("-500.00")

    def test_invalid_member_blocks_whole_group(
        self, group_manager, account_registry, office_supplies, cash, test_actor_id
    ):
        """One bad line posts nothing."""
        account_registry.deactivate(office_supplies.id, test_actor_id)
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)

        with pytest.raises(PostingValidationError) as exc_info:
            group_manager.post_group(group.id, test_actor_id)

        assert "line_1:account_inactive:6100" in exc_info.value.violations
        assert group_manager.get_group(group.id).status is TransactionStatus.PENDING
        assert cash.balance == Decimal("0")

    def test_validate_group_reports_without_posting(
        self, group_manager, account_registry, office_supplies, cash, test_actor_id
    ):
        """validate_group lists member violations by line."""
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)
        assert group_manager.validate_group(group.id) == []
        group_manager.delete_group(group.id, test_actor_id)

        account_registry.deactivate(cash.id, test_actor_id)
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)

        assert group_manager.validate_group(group.id) == ["line_2:account_inactive:1000"]

    def test_member_cannot_post_alone(self, group_manager, posting_engine, office_supplies, cash, test_actor_id):
        """Members move only with their group."""
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)

        with pytest.raises(InvalidStateTransitionError):
            posting_engine.post(group.lines[0].id, test_actor_id)
        assert cash.balance == Decimal("0")

    def test_member_cannot_reverse_alone(self, group_manager, posting_engine, office_supplies, cash, test_actor_id):
        """A posted member is reversed only through its group."""
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)
        group_manager.post_group(group.id, test_actor_id)

        with pytest.raises(InvalidStateTransitionError):
            posting_engine.reverse(group.lines[0].id, test_actor_id)

    def test_member_reversal_cannot_reverse_alone(
        self, group_manager, posting_engine, office_supplies, cash, test_actor_id
    ):
        """Reversal lines of a journal entry stay owned by the entry."""
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)
        group_manager.post_group(group.id, test_actor_id)
        result = group_manager.reverse_group(group.id, test_actor_id)

        reversal_id = result.reversals[0].reversal_id
        assert posting_engine.get_transaction(reversal_id).owner_type == "LedgerTransactionGroup"
        with pytest.raises(InvalidStateTransitionError):
            posting_engine.reverse(reversal_id, test_actor_id)
        assert office_supplies.balance == Decimal("0")
        assert cash.balance == Decimal("0")

    def test_reverse_pending_rejected(self, group_manager, office_supplies, cash, test_actor_id):
        """Only posted groups reverse."""
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)
        with pytest.raises(NotPostedError):
            group_manager.reverse_group(group.id, test_actor_id)

    def test_group_events(self, session, group_manager, office_supplies, cash, test_actor_id, published_events):
        """Posting and reversing announce the group and each line."""
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)
        group_manager.post_group(group.id, test_actor_id)
        session.commit()

        types = [e.event_type for e in published_events]
        assert types.count("ledger.transaction.posted") == 2
        assert types[-1] == "ledger.group.posted"


class TestDeleteGroup:
    """Tests for delete_group."""

    def test_delete_pending_removes_members(self, group_manager, posting_engine, office_supplies, cash, test_actor_id):
        """Deleting a pending group removes every line."""
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)
        member_ids = [line.id for line in group.lines]

        group_manager.delete_group(group.id, test_actor_id)

        with pytest.raises(GroupNotFoundError):
            group_manager.get_group(group.id)
        for member_id in member_ids:
            with pytest.raises(TransactionNotFoundError):
                posting_engine.get_transaction(member_id)

    def test_delete_posted_rejected(self, group_manager, office_supplies, cash, test_actor_id):
        """Posted groups are permanent."""
        group = _supplies_entry(group_manager, test_actor_id, office_supplies, cash)
        group_manager.post_group(group.id, test_actor_id)

        with pytest.raises(InvalidStateTransitionError):
            group_manager.delete_group(group.id, test_actor_id)

    def test_unknown_group(self, group_manager, test_actor_id):
        """Unknown ids raise GroupNotFoundError."""
        with pytest.raises(GroupNotFoundError):
            group_manager.delete_group(uuid4(), test_actor_id)
