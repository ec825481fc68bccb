"""
PostingEngine -- validate, post and reverse ledger transactions.

Responsibility:
    The only writer of account balances.  Creates PENDING transactions,
    validates them, applies their signed legs to account balances when
    posting, and reverses posted transactions with a swapped, immediately
    posted counter-transaction.

Architecture position:
    Kernel > Services.  Used directly by callers and by the
    TransactionGroupManager, VoucherService and BillingService.

Invariants enforced:
    - A transaction posts exactly once; posting it again raises
      AlreadyPostedError and leaves balances untouched.
    - Balances change only for posted transactions, by signed_delta of each leg.
    - Reversal never edits the original beyond ``status``.
    - Account rows are locked (SELECT ... FOR UPDATE, ascending id) before
      their balances are read and written, so concurrent posts to the same
      account serialize.

Failure modes:
    - PostingValidationError: validate() found violations.
    - AlreadyPostedError / NotPostedError: stale caller state.
    - InvalidStateTransitionError: a group member posted or reversed on its
      own, or an owned transaction (voucher, invoice or bill payment) touched
      by a caller that does not name its owner.

Audit relevance:
    transaction_created / transaction_posted / transaction_reversed are
    logged with balance deltas; domain events follow after commit.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select

from ledger_kernel.domain.currency import CurrencyRegistry, fits_minor_units
from ledger_kernel.domain.ledger import (
    EntrySide,
    JournalEntryType,
    TransactionStatus,
    signed_delta,
)
from ledger_kernel.domain.lifecycles import TRANSACTION_LIFECYCLE
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AlreadyPostedError,
    InvalidStateTransitionError,
    NotPostedError,
    PostingValidationError,
    TransactionNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import LedgerAccount
from ledger_kernel.models.transaction import LedgerTransaction, LedgerTransactionGroup
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.posting")


def _check_shape(transaction_id, debit_account_id, credit_account_id, account_id, transaction_state) -> bool:
    """True for double-entry, False for single-entry; anything else is rejected."""
    double = debit_account_id is not None or credit_account_id is not None
    single = account_id is not None or transaction_state is not None
    shape_ok = (
        double and not single and debit_account_id is not None and credit_account_id is not None
    ) or (
        single and not double and account_id is not None and transaction_state is not None
    )
    if not shape_ok:
        raise PostingValidationError(str(transaction_id), ["invalid_transaction_shape"])
    return double


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validate(); violations are aggregated, never raised."""

    transaction_id: UUID
    violations: tuple[str, ...]

    @property
    def is_valid(self) -> bool:
        return not self.violations


@dataclass(frozen=True)
class BalanceChange:
    account_id: UUID
    account_code: str
    delta: Decimal
    new_balance: Decimal


@dataclass(frozen=True)
class PostedTransaction:
    transaction_id: UUID
    transaction_number: str
    status: TransactionStatus
    posted_at: datetime
    balance_changes: tuple[BalanceChange, ...]


@dataclass(frozen=True)
class ReversalTransaction:
    original_id: UUID
    reversal_id: UUID
    reversal_number: str
    reversal_date: date
    balance_changes: tuple[BalanceChange, ...]


class PostingEngine(BaseService[LedgerTransaction]):
    """
    Posting Engine.

    Contract:
        Callers own the transaction boundary; every method flushes.

    Guarantees:
        - Double-entry legs reference two distinct, active accounts.
        - Amounts are positive and fit the currency's minor units.

    Non-goals:
        - Does not decide *what* to post; vouchers and documents do.
    """

    def __init__(self, session, clock=None, event_bus=None):
        super().__init__(session, clock, event_bus)
        self._sequences = SequenceService(session)

    # -- creation -----------------------------------------------------------

    def create_transaction(
        self,
        *,
        transaction_date: date,
        description: str,
        amount: Decimal,
        currency: str,
        actor_id: UUID,
        debit_account_id: UUID | None = None,
        credit_account_id: UUID | None = None,
        account_id: UUID | None = None,
        transaction_state: EntrySide | str | None = None,
        reference: str | None = None,
        transaction_id: UUID | None = None,
        group: LedgerTransactionGroup | None = None,
        line_number: int | None = None,
        owner_type: str | None = None,
    ) -> LedgerTransaction:
        """
        Create a PENDING transaction of exactly one shape.

        Double-entry: ``debit_account_id`` + ``credit_account_id``.
        Single-entry: ``account_id`` + ``transaction_state``.

        ``owner_type`` marks the aggregate whose workflow decides when the
        transaction posts; every later post/reverse/delete must name it.

        Raises:
            TypeError: ``amount`` is not a Decimal.
            PostingValidationError: neither or both shapes supplied, or
                ``amount`` is not positive.
            AccountNotFoundError: a referenced account does not exist.
        """
        if not isinstance(amount, Decimal):
            raise TypeError(f"amount must be Decimal, got {type(amount).__name__}")
        transaction_id = transaction_id or uuid4()
        double = _check_shape(transaction_id, debit_account_id, credit_account_id,
                              account_id, transaction_state)
        if amount <= 0:
            raise PostingValidationError(str(transaction_id), ["amount_not_positive"])
        self._require_accounts(debit_account_id, credit_account_id, account_id)

        txn = LedgerTransaction(
            id=transaction_id,
            transaction_number=self._sequences.next_number(SequenceService.TRANSACTION, "LT"),
            transaction_date=transaction_date,
            description=description,
            reference=reference,
            amount=amount,
            currency=CurrencyRegistry.validate(currency),
            status=TransactionStatus.PENDING,
            journal_entry_type=JournalEntryType.DOUBLE_ENTRY if double else JournalEntryType.SINGLE_ENTRY,
            debit_account_id=debit_account_id,
            credit_account_id=credit_account_id,
            account_id=account_id,
            transaction_state=None if double else EntrySide(transaction_state),
            line_number=line_number,
            owner_type=owner_type,
            created_by_id=actor_id,
        )
        if group is not None:
            group.lines.append(txn)
        self.session.add(txn)
        self.session.flush()

        logger.info(
            "transaction_created",
            extra={
                "transaction_id": str(txn.id),
                "transaction_number": txn.transaction_number,
                "journal_entry_type": txn.journal_entry_type.value,
                "amount": str(amount),
                "currency": txn.currency,
                "group_id": str(group.id) if group is not None else None,
                "owner_type": owner_type,
            },
        )
        return txn

    def get_transaction(self, transaction_id: UUID) -> LedgerTransaction:
        txn = self.session.get(LedgerTransaction, transaction_id)
        if txn is None:
            raise TransactionNotFoundError(str(transaction_id))
        return txn

    # -- validation ---------------------------------------------------------

    def validate(
        self,
        transaction: LedgerTransaction,
        accounts: dict[UUID, LedgerAccount] | None = None,
    ) -> ValidationResult:
        """
        Check a transaction is postable, returning every violation found.

        Checks: PENDING status; amount > 0 and within currency minor units;
        referenced accounts exist, are active and share the transaction
        currency; double-entry legs are distinct accounts.
        """
        violations: list[str] = []

        if transaction.status is not TransactionStatus.PENDING:
            violations.append(f"status_not_pending:{transaction.status.value}")

        if transaction.amount is None or transaction.amount <= 0:
            violations.append("amount_not_positive")
        elif not fits_minor_units(transaction.amount, transaction.currency):
            violations.append("amount_precision_exceeds_currency")

        if transaction.is_double_entry and transaction.debit_account_id == transaction.credit_account_id:
            violations.append("debit_and_credit_accounts_identical")

        for account_id in dict.fromkeys(transaction.account_ids()):
            account = (accounts or {}).get(account_id) or self.session.get(LedgerAccount, account_id)
            if account is None:
                violations.append(f"account_not_found:{account_id}")
                continue
            if not account.is_active:
                violations.append(f"account_inactive:{account.code}")
            if account.currency != transaction.currency:
                violations.append(f"currency_mismatch:{account.code}")

        return ValidationResult(transaction_id=transaction.id, violations=tuple(violations))

    # -- posting ------------------------------------------------------------

    def post(
        self,
        transaction_id: UUID,
        actor_id: UUID,
        *,
        owner_type: str | None = None,
    ) -> PostedTransaction:
        """
        Post a standalone PENDING transaction.

        Raises:
            AlreadyPostedError: already POSTED or REVERSED; balances untouched.
            InvalidStateTransitionError: the transaction belongs to a group,
                or ``owner_type`` does not match its owner.
            PostingValidationError: validate() found violations.
        """
        txn = self._load_for_update(transaction_id)
        self._require_owner(txn, "post", owner_type)
        return self.post_member(txn, actor_id)

    def post_member(self, txn: LedgerTransaction, actor_id: UUID) -> PostedTransaction:
        """Post ``txn`` whether or not it belongs to a group.

        Callers other than TransactionGroupManager should use ``post``,
        naming their ``owner_type`` when they own the transaction.
        """
        if TRANSACTION_LIFECYCLE.transition_for(txn.status.value, "post") is None:
            logger.info(
                "transaction_already_posted",
                extra={"transaction_id": str(txn.id), "status": txn.status.value},
            )
            raise AlreadyPostedError("LedgerTransaction", str(txn.id), txn.status.value)

        accounts = self._lock_accounts(txn.account_ids())
        result = self.validate(txn, accounts)
        if not result.is_valid:
            logger.warning(
                "posting_validation_failed",
                extra={"transaction_id": str(txn.id), "violations": list(result.violations)},
            )
            raise PostingValidationError(str(txn.id), list(result.violations))

        changes = self._apply_legs(txn, accounts, actor_id)
        posted_at = self._clock.now()
        txn.status = TransactionStatus.POSTED
        txn.posted_at = posted_at
        txn.posted_by_id = actor_id
        txn.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "transaction_posted",
            extra={
                "transaction_id": str(txn.id),
                "transaction_number": txn.transaction_number,
                "amount": str(txn.amount),
                "balance_changes": {c.account_code: str(c.delta) for c in changes},
                "actor_id": str(actor_id),
            },
        )
        self._emit(
            "ledger.transaction.posted", "LedgerTransaction", txn.id,
            transaction_number=txn.transaction_number, amount=str(txn.amount),
        )
        return PostedTransaction(
            transaction_id=txn.id,
            transaction_number=txn.transaction_number,
            status=txn.status,
            posted_at=posted_at,
            balance_changes=changes,
        )

    # -- reversal -----------------------------------------------------------

    def reverse(
        self,
        transaction_id: UUID,
        actor_id: UUID,
        reversal_date: date | None = None,
        *,
        owner_type: str | None = None,
    ) -> ReversalTransaction:
        """
        Reverse a standalone POSTED transaction.

        Raises:
            NotPostedError: status is not POSTED.
            InvalidStateTransitionError: the transaction belongs to a group,
                or ``owner_type`` does not match its owner.
        """
        txn = self._load_for_update(transaction_id)
        self._require_owner(txn, "reverse", owner_type)
        return self.reverse_member(txn, actor_id, reversal_date)

    def reverse_member(
        self,
        txn: LedgerTransaction,
        actor_id: UUID,
        reversal_date: date | None = None,
    ) -> ReversalTransaction:
        """Reverse ``txn`` whether or not it belongs to a group."""
        if TRANSACTION_LIFECYCLE.transition_for(txn.status.value, "reverse") is None:
            raise NotPostedError("LedgerTransaction", str(txn.id), txn.status.value)

        reversal_date = reversal_date or self._clock.today()
        swapped: dict = (
            {"debit_account_id": txn.credit_account_id, "credit_account_id": txn.debit_account_id}
            if txn.is_double_entry
            else {"account_id": txn.account_id, "transaction_state": txn.transaction_state.opposite()}
        )
        reversal = self.create_transaction(
            transaction_date=reversal_date,
            description=f"Reversal of {txn.transaction_number}: {txn.description}",
            amount=txn.amount,
            currency=txn.currency,
            actor_id=actor_id,
            reference=txn.transaction_number,
            owner_type=txn.owner_type,
            **swapped,
        )
        reversal.reversal_of_id = txn.id

        # Reversal legs post even if an account was deactivated since.
        accounts = self._lock_accounts(reversal.account_ids())
        changes = self._apply_legs(reversal, accounts, actor_id)
        reversal.status = TransactionStatus.POSTED
        reversal.posted_at = self._clock.now()
        reversal.posted_by_id = actor_id

        txn.status = TransactionStatus.REVERSED
        txn.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "transaction_reversed",
            extra={
                "transaction_id": str(txn.id),
                "reversal_id": str(reversal.id),
                "reversal_number": reversal.transaction_number,
                "balance_changes": {c.account_code: str(c.delta) for c in changes},
                "actor_id": str(actor_id),
            },
        )
        self._emit(
            "ledger.transaction.reversed", "LedgerTransaction", txn.id,
            reversal_id=str(reversal.id),
        )
        return ReversalTransaction(
            original_id=txn.id,
            reversal_id=reversal.id,
            reversal_number=reversal.transaction_number,
            reversal_date=reversal_date,
            balance_changes=changes,
        )

    # -- deletion -----------------------------------------------------------

    def delete_transaction(
        self,
        transaction_id: UUID,
        actor_id: UUID,
        *,
        owner_type: str | None = None,
    ) -> None:
        """Hard-delete a PENDING, ungrouped transaction. Leaves no trace."""
        txn = self._load_for_update(transaction_id)
        self._require_owner(txn, "delete", owner_type)
        if txn.status is not TransactionStatus.PENDING:
            raise InvalidStateTransitionError(
                "LedgerTransaction", str(txn.id), txn.status.value, "delete"
            )
        self.session.delete(txn)
        self.session.flush()
        logger.info(
            "transaction_deleted",
            extra={"transaction_id": str(transaction_id), "actor_id": str(actor_id)},
        )

    def replace_legs(
        self,
        transaction_id: UUID,
        actor_id: UUID,
        *,
        debit_account_id: UUID | None = None,
        credit_account_id: UUID | None = None,
        account_id: UUID | None = None,
        transaction_state: EntrySide | str | None = None,
        owner_type: str | None = None,
    ) -> LedgerTransaction:
        """
        Re-point a PENDING, ungrouped transaction at new legs, keeping its
        identity and number.  The shape may change between double and single
        entry.

        Raises:
            InvalidStateTransitionError: not PENDING, a group member, or
                ``owner_type`` does not match its owner.
        """
        txn = self._load_for_update(transaction_id)
        self._require_owner(txn, "replace legs", owner_type)
        if txn.status is not TransactionStatus.PENDING:
            raise InvalidStateTransitionError(
                "LedgerTransaction", str(txn.id), txn.status.value, "replace legs"
            )
        double = _check_shape(txn.id, debit_account_id, credit_account_id,
                              account_id, transaction_state)
        self._require_accounts(debit_account_id, credit_account_id, account_id)

        txn.journal_entry_type = JournalEntryType.DOUBLE_ENTRY if double else JournalEntryType.SINGLE_ENTRY
        txn.debit_account_id = debit_account_id
        txn.credit_account_id = credit_account_id
        txn.account_id = account_id
        txn.transaction_state = None if double else EntrySide(transaction_state)
        txn.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "transaction_legs_replaced",
            extra={
                "transaction_id": str(txn.id),
                "journal_entry_type": txn.journal_entry_type.value,
                "actor_id": str(actor_id),
            },
        )
        return txn

    # -- internals ----------------------------------------------------------

    def _require_owner(self, txn: LedgerTransaction, action: str, owner_type: str | None) -> None:
        if txn.group_id is not None:
            raise InvalidStateTransitionError(
                "LedgerTransaction", str(txn.id), txn.status.value, f"{action} outside its group"
            )
        if txn.owner_type != owner_type:
            logger.warning(
                "owned_transaction_access_rejected",
                extra={
                    "transaction_id": str(txn.id),
                    "owner_type": txn.owner_type,
                    "caller_owner_type": owner_type,
                    "action": action,
                },
            )
            raise InvalidStateTransitionError(
                "LedgerTransaction", str(txn.id), txn.status.value,
                f"{action} outside its {txn.owner_type or 'standalone use'}",
            )

    def _require_accounts(self, *account_ids: UUID | None) -> None:
        for ref in account_ids:
            if ref is not None and self.session.get(LedgerAccount, ref) is None:
                raise AccountNotFoundError(str(ref))

    def _load_for_update(self, transaction_id: UUID) -> LedgerTransaction:
        txn = self.session.execute(
            select(LedgerTransaction)
            .where(LedgerTransaction.id == transaction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if txn is None:
            raise TransactionNotFoundError(str(transaction_id))
        return txn

    def _lock_accounts(self, account_ids: list[UUID]) -> dict[UUID, LedgerAccount]:
        if not account_ids:
            return {}
        rows = self.session.execute(
            select(LedgerAccount)
            .where(LedgerAccount.id.in_(set(account_ids)))
            .order_by(LedgerAccount.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()
        return {account.id: account for account in rows}

    def _apply_legs(
        self,
        txn: LedgerTransaction,
        accounts: dict[UUID, LedgerAccount],
        actor_id: UUID,
    ) -> tuple[BalanceChange, ...]:
        changes = []
        for leg in txn.legs():
            account = accounts[leg.account_id]
            delta = signed_delta(account.ledger_group, leg.side, leg.amount)
            account.balance = account.balance + delta
            account.updated_by_id = actor_id
            changes.append(BalanceChange(account.id, account.code, delta, account.balance))
        return tuple(changes)
