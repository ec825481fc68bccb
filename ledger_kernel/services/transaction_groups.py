"""
TransactionGroupManager -- journal entries posted and reversed atomically.

Responsibility:
    Builds a LedgerTransactionGroup of single-entry member lines, refuses
    unbalanced entries, and posts or reverses every member inside one
    SAVEPOINT so either all legs change account balances or none do.

Architecture position:
    Kernel > Services.  Delegates every balance change to PostingEngine.

Invariants enforced:
    - A journal entry has at least two lines and sum(debits) == sum(credits)
      at creation and again at post time.
    - Group posting is never decomposed into independently committed
      per-line postings.
    - Partial reversal of a group is not a reachable state.

Failure modes:
    - UnbalancedEntryError, PostingValidationError, AccountNotFoundError:
      nothing was written.
    - LedgerIntegrityError: a POSTED group no longer balances or has a
      member outside POSTED; logged as ``integrity_violation_detected``.

Audit relevance:
    group_created / group_posted / group_reversed carry totals and the
    acting user.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select

from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.domain.ledger import EntrySide, TransactionStatus
from ledger_kernel.domain.lifecycles import GROUP_LIFECYCLE
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AlreadyPostedError,
    GroupNotFoundError,
    InvalidStateTransitionError,
    LedgerIntegrityError,
    NotPostedError,
    PostingValidationError,
    UnbalancedEntryError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import LedgerAccount
from ledger_kernel.models.transaction import LedgerTransactionGroup
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.posting_engine import (
    PostedTransaction,
    PostingEngine,
    ReversalTransaction,
)
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.transaction_groups")

MIN_JOURNAL_LINES = 2
OWNER_TYPE = "LedgerTransactionGroup"


@dataclass(frozen=True)
class GroupLine:
    """One requested journal entry line."""

    account_id: UUID
    side: EntrySide
    amount: Decimal
    description: str | None = None


@dataclass(frozen=True)
class GroupPostingResult:
    group_id: UUID
    group_number: str
    status: TransactionStatus
    posted_at: datetime
    lines: tuple[PostedTransaction, ...]


@dataclass(frozen=True)
class GroupReversalResult:
    group_id: UUID
    group_number: str
    status: TransactionStatus
    reversals: tuple[ReversalTransaction, ...]


class TransactionGroupManager(BaseService[LedgerTransactionGroup]):
    """
    Journal entry lifecycle: create, post, reverse, delete.

    Contract:
        Runs inside the caller's transaction.  post_group/reverse_group open a
        nested SAVEPOINT so a failing leg discards every balance mutation of
        the group while leaving the caller's outer transaction usable.
    """

    def __init__(self, session, clock=None, event_bus=None, posting_engine: PostingEngine | None = None):
        super().__init__(session, clock, event_bus)
        self._engine = posting_engine or PostingEngine(session, self._clock, event_bus)
        self._sequences = SequenceService(session)

    def create_group(
        self,
        description: str,
        group_date: date,
        lines: list[GroupLine],
        actor_id: UUID,
        currency: str,
        reference: str | None = None,
    ) -> LedgerTransactionGroup:
        """
        Create a PENDING journal entry with one member transaction per line.

        Every line is checked before anything is written; a failure leaves
        no group and no member rows behind.

        Raises:
            TypeError: a line amount is not a Decimal.
            PostingValidationError: fewer than two lines, or a line amount
                is not positive.
            AccountNotFoundError: a line references an unknown account.
            UnbalancedEntryError: sum of debit lines != sum of credit lines.
        """
        group_id = uuid4()
        if len(lines) < MIN_JOURNAL_LINES:
            raise PostingValidationError(str(group_id), ["journal_entry_requires_two_lines"])
        currency = CurrencyRegistry.validate(currency)
        self._check_lines(group_id, lines)

        debits = sum((line.amount for line in lines if line.side is EntrySide.DEBIT), Decimal("0"))
        credits = sum((line.amount for line in lines if line.side is EntrySide.CREDIT), Decimal("0"))
        if debits != credits:
            logger.warning(
                "unbalanced_entry_rejected",
                extra={"debits": str(debits), "credits": str(credits)},
            )
            raise UnbalancedEntryError(debits, credits)

        with self.session.begin_nested():
            group = LedgerTransactionGroup(
                id=group_id,
                group_number=self._sequences.next_number(SequenceService.GROUP, "JE"),
                description=description,
                group_date=group_date,
                reference=reference,
                status=TransactionStatus.PENDING,
                created_by_id=actor_id,
            )
            self.session.add(group)
            self.session.flush()

            for number, line in enumerate(lines, start=1):
                self._engine.create_transaction(
                    transaction_date=group_date,
                    description=line.description or description,
                    amount=line.amount,
                    currency=currency,
                    actor_id=actor_id,
                    account_id=line.account_id,
                    transaction_state=EntrySide(line.side),
                    reference=group.group_number,
                    group=group,
                    line_number=number,
                    owner_type=OWNER_TYPE,
                )

        logger.info(
            "group_created",
            extra={
                "group_id": str(group.id),
                "group_number": group.group_number,
                "line_count": len(lines),
                "total_debit": str(debits),
                "total_credit": str(credits),
                "actor_id": str(actor_id),
            },
        )
        return group

    def get_group(self, group_id: UUID) -> LedgerTransactionGroup:
        group = self.session.get(LedgerTransactionGroup, group_id)
        if group is None:
            raise GroupNotFoundError(str(group_id))
        return group

    def validate_group(self, group_id: UUID) -> list[str]:
        """Aggregate member violations plus the group balance check."""
        return self._violations(self.get_group(group_id))

    def _check_lines(self, group_id: UUID, lines: list[GroupLine]) -> None:
        violations = []
        for number, line in enumerate(lines, start=1):
            if not isinstance(line.amount, Decimal):
                raise TypeError(f"line {number} amount must be Decimal, got {type(line.amount).__name__}")
            if line.amount <= 0:
                violations.append(f"line_{number}:amount_not_positive")
        if violations:
            raise PostingValidationError(str(group_id), violations)
        for line in lines:
            if self.session.get(LedgerAccount, line.account_id) is None:
                raise AccountNotFoundError(str(line.account_id))

    def _violations(self, group: LedgerTransactionGroup) -> list[str]:
        violations: list[str] = []
        if len(group.lines) < MIN_JOURNAL_LINES:
            violations.append("journal_entry_requires_two_lines")
        if not group.balanced:
            violations.append("unbalanced")
        for line in group.lines:
            result = self._engine.validate(line)
            violations.extend(f"line_{line.line_number}:{v}" for v in result.violations)
        return violations

    def post_group(self, group_id: UUID, actor_id: UUID) -> GroupPostingResult:
        """
        Post every member line as one atomic unit.

        Raises:
            AlreadyPostedError: group is POSTED or REVERSED.
            UnbalancedEntryError: group is unbalanced at post time.
            PostingValidationError: any member failed validation.
        """
        group = self._load_for_update(group_id)
        if GROUP_LIFECYCLE.transition_for(group.status.value, "post") is None:
            raise AlreadyPostedError("LedgerTransactionGroup", str(group.id), group.status.value)
        if not group.balanced:
            raise UnbalancedEntryError(group.total_debit, group.total_credit, str(group.id))

        violations = self._violations(group)
        if violations:
            logger.warning(
                "group_validation_failed",
                extra={"group_id": str(group.id), "violations": violations},
            )
            raise PostingValidationError(str(group.id), violations)

        posted_at = self._clock.now()
        with self.session.begin_nested():
            posted = tuple(self._engine.post_member(line, actor_id) for line in group.lines)
            group.status = TransactionStatus.POSTED
            group.posted_at = posted_at
            group.updated_by_id = actor_id
            self.session.flush()

        logger.info(
            "group_posted",
            extra={
                "group_id": str(group.id),
                "group_number": group.group_number,
                "line_count": len(posted),
                "total_debit": str(group.total_debit),
                "actor_id": str(actor_id),
            },
        )
        self._emit("ledger.group.posted", "LedgerTransactionGroup", group.id,
                   group_number=group.group_number, total=str(group.total_debit))
        return GroupPostingResult(
            group_id=group.id,
            group_number=group.group_number,
            status=group.status,
            posted_at=posted_at,
            lines=posted,
        )

    def reverse_group(
        self,
        group_id: UUID,
        actor_id: UUID,
        reversal_date: date | None = None,
    ) -> GroupReversalResult:
        """
        Reverse every member line and mark the group REVERSED, atomically.

        Raises:
            NotPostedError: group is not POSTED.
            LedgerIntegrityError: the posted group is unbalanced or partially reversed.
        """
        group = self._load_for_update(group_id)
        if GROUP_LIFECYCLE.transition_for(group.status.value, "reverse") is None:
            raise NotPostedError("LedgerTransactionGroup", str(group.id), group.status.value)

        stray = [line.transaction_number for line in group.lines
                 if line.status is not TransactionStatus.POSTED]
        if not group.balanced or stray:
            reason = "posted group is unbalanced" if not group.balanced else (
                f"members not POSTED: {', '.join(stray)}"
            )
            logger.error(
                "integrity_violation_detected",
                extra={"entity_type": "LedgerTransactionGroup", "entity_id": str(group.id),
                       "reason": reason},
            )
            raise LedgerIntegrityError("LedgerTransactionGroup", str(group.id), reason)

        with self.session.begin_nested():
            reversals = tuple(
                self._engine.reverse_member(line, actor_id, reversal_date) for line in group.lines
            )
            group.status = TransactionStatus.REVERSED
            group.updated_by_id = actor_id
            self.session.flush()

        logger.info(
            "group_reversed",
            extra={
                "group_id": str(group.id),
                "group_number": group.group_number,
                "reversal_ids": [str(r.reversal_id) for r in reversals],
                "actor_id": str(actor_id),
            },
        )
        self._emit("ledger.group.reversed", "LedgerTransactionGroup", group.id,
                   group_number=group.group_number)
        return GroupReversalResult(
            group_id=group.id,
            group_number=group.group_number,
            status=group.status,
            reversals=reversals,
        )

    def delete_group(self, group_id: UUID, actor_id: UUID) -> None:
        """Hard-delete a PENDING group together with its member lines."""
        group = self._load_for_update(group_id)
        if group.status is not TransactionStatus.PENDING:
            raise InvalidStateTransitionError(
                "LedgerTransactionGroup", str(group.id), group.status.value, "delete"
            )
        self.session.delete(group)
        self.session.flush()
        logger.info(
            "group_deleted",
            extra={"group_id": str(group_id), "actor_id": str(actor_id)},
        )

    def _load_for_update(self, group_id: UUID) -> LedgerTransactionGroup:
        group = self.session.execute(
            select(LedgerTransactionGroup)
            .where(LedgerTransactionGroup.id == group_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if group is None:
            raise GroupNotFoundError(str(group_id))
        return group
