"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-side ledger projections: as-of balances rebuilt from
    posted transactions, account transaction listings and the trial balance
    consumed by the reporting layer.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Only transactions that were posted (status POSTED or REVERSED) count;
      PENDING transactions never affect a balance.  A reversed original and
      its reversal are both counted, and cancel each other.
    - Sums are exact Decimal arithmetic.

Audit relevance:
    ``reconstructed_balance`` must equal the stored running balance; a
    difference means the running balance was changed outside the posting
    path.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, or_, select

from ledger_kernel.domain.ledger import (
    EntrySide,
    JournalEntryType,
    LedgerGroup,
    TransactionStatus,
    signed_delta,
)
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import LedgerAccount
from ledger_kernel.models.transaction import LedgerTransaction
from ledger_kernel.selectors.base import BaseSelector

_EFFECTIVE_STATES = (TransactionStatus.POSTED, TransactionStatus.REVERSED)


@dataclass(frozen=True)
class TransactionView:
    """Read model of a ledger transaction."""

    id: UUID
    transaction_number: str
    transaction_date: date
    description: str
    reference: str | None
    amount: Decimal
    currency: str
    status: TransactionStatus
    journal_entry_type: JournalEntryType
    debit_account_id: UUID | None
    credit_account_id: UUID | None
    account_id: UUID | None
    transaction_state: EntrySide | None
    group_id: UUID | None
    reversal_of_id: UUID | None


@dataclass(frozen=True)
class TrialBalanceRow:
    account_id: UUID
    account_code: str
    account_name: str
    ledger_group: LedgerGroup
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class TrialBalance:
    """Ending debit/credit per account, grouped by ledger group."""

    as_of_date: date | None
    rows: tuple[TrialBalanceRow, ...]
    total_debit: Decimal
    total_credit: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit

    def by_group(self) -> dict[LedgerGroup, tuple[TrialBalanceRow, ...]]:
        grouped: dict[LedgerGroup, list[TrialBalanceRow]] = defaultdict(list)
        for row in self.rows:
            grouped[row.ledger_group].append(row)
        return {group: tuple(rows) for group, rows in grouped.items()}


def _view(txn: LedgerTransaction) -> TransactionView:
    return TransactionView(
        id=txn.id,
        transaction_number=txn.transaction_number,
        transaction_date=txn.transaction_date,
        description=txn.description,
        reference=txn.reference,
        amount=txn.amount,
        currency=txn.currency,
        status=txn.status,
        journal_entry_type=txn.journal_entry_type,
        debit_account_id=txn.debit_account_id,
        credit_account_id=txn.credit_account_id,
        account_id=txn.account_id,
        transaction_state=txn.transaction_state,
        group_id=txn.group_id,
        reversal_of_id=txn.reversal_of_id,
    )


def _references(account_id: UUID):
    return or_(
        LedgerTransaction.debit_account_id == account_id,
        LedgerTransaction.credit_account_id == account_id,
        LedgerTransaction.account_id == account_id,
    )


class LedgerSelector(BaseSelector[LedgerTransaction]):
    """Balance reconstruction, transaction listing and trial balance."""

    def _posted_transactions(self, as_of_date: date | None, account_id: UUID | None = None):
        stmt = select(LedgerTransaction).where(LedgerTransaction.status.in_(_EFFECTIVE_STATES))
        if as_of_date is not None:
            stmt = stmt.where(LedgerTransaction.transaction_date <= as_of_date)
        if account_id is not None:
            stmt = stmt.where(_references(account_id))
        return self.session.execute(stmt).scalars().all()

    def _balances(self, as_of_date: date | None, account_id: UUID | None = None) -> dict[UUID, Decimal]:
        groups = dict(self.session.execute(select(LedgerAccount.id, LedgerAccount.ledger_group)).all())
        balances: dict[UUID, Decimal] = defaultdict(lambda: Decimal("0"))
        for txn in self._posted_transactions(as_of_date, account_id):
            for leg in txn.legs():
                if account_id is not None and leg.account_id != account_id:
                    continue
                balances[leg.account_id] += signed_delta(groups[leg.account_id], leg.side, leg.amount)
        return balances

    def balance_as_of(self, account_id: UUID, as_of_date: date | None) -> Decimal:
        """Signed normal balance from transactions dated on or before ``as_of_date``."""
        if self.session.get(LedgerAccount, account_id) is None:
            raise AccountNotFoundError(str(account_id))
        return self._balances(as_of_date, account_id).get(account_id, Decimal("0"))

    def reconstructed_balance(self, account_id: UUID) -> Decimal:
        return self.balance_as_of(account_id, None)

    def list_transactions(
        self,
        account_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        status: TransactionStatus | None = None,
    ) -> list[TransactionView]:
        stmt = select(LedgerTransaction)
        conditions = []
        if account_id is not None:
            conditions.append(_references(account_id))
        if start_date is not None:
            conditions.append(LedgerTransaction.transaction_date >= start_date)
        if end_date is not None:
            conditions.append(LedgerTransaction.transaction_date <= end_date)
        if status is not None:
            conditions.append(LedgerTransaction.status == TransactionStatus(status))
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(LedgerTransaction.transaction_date, LedgerTransaction.transaction_number)
        return [_view(txn) for txn in self.session.execute(stmt).scalars().all()]

    def trial_balance(self, as_of_date: date | None = None) -> TrialBalance:
        """
        Trial balance over every account with a non-zero balance.

        Without ``as_of_date`` the stored running balances are used; with it
        balances are rebuilt from posted transactions.
        """
        accounts = self.session.execute(
            select(LedgerAccount).order_by(LedgerAccount.ledger_group, LedgerAccount.code)
        ).scalars().all()
        rebuilt = self._balances(as_of_date) if as_of_date is not None else None

        rows: list[TrialBalanceRow] = []
        total_debit = Decimal("0")
        total_credit = Decimal("0")
        for account in accounts:
            balance = rebuilt.get(account.id, Decimal("0")) if rebuilt is not None else account.balance
            if balance == 0:
                continue
            # Positive balances sit on the normal side, negative on the other.
            on_debit_side = (balance > 0) == account.is_debit_normal
            debit = abs(balance) if on_debit_side else Decimal("0")
            credit = Decimal("0") if on_debit_side else abs(balance)
            rows.append(
                TrialBalanceRow(
                    account_id=account.id,
                    account_code=account.code,
                    account_name=account.name,
                    ledger_group=account.ledger_group,
                    debit=debit,
                    credit=credit,
                )
            )
            total_debit += debit
            total_credit += credit

        return TrialBalance(
            as_of_date=as_of_date,
            rows=tuple(rows),
            total_debit=total_debit,
            total_credit=total_credit,
        )
