"""
AccountRegistry -- chart of accounts maintenance.

Responsibility:
    Creates and maintains LedgerAccounts: unique codes, an acyclic parent
    tree, activation state.  Balance reads are served here; balance writes
    are NOT -- only the PostingEngine's commit path changes ``balance``.

Architecture position:
    Kernel > Services.  Leaf dependency of the posting, voucher and billing
    services.

Invariants enforced:
    - Account codes are unique (DuplicateAccountCodeError).
    - The parent tree has no cycles (CyclicHierarchyError).
    - An account with PENDING transactions cannot be deactivated
      (AccountInUseError); posted history may stay on an inactive account.

Audit relevance:
    account_created / account_moved / account_deactivated / account_activated
    are logged with the acting user.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, or_, select

from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.domain.ledger import LedgerGroup, TransactionStatus
from ledger_kernel.exceptions import (
    AccountInUseError,
    AccountNotFoundError,
    CyclicHierarchyError,
    DuplicateAccountCodeError,
    LedgerIntegrityError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import LedgerAccount
from ledger_kernel.models.transaction import LedgerTransaction
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account_registry")


class AccountRegistry(BaseService[LedgerAccount]):
    """
    Service for the chart of accounts.

    Contract:
        Every mutating method takes ``actor_id`` and flushes.  Lookups of
        unknown ids raise AccountNotFoundError.

    Non-goals:
        - Does not post or mutate balances.
    """

    def __init__(self, session, clock=None, event_bus=None, base_currency: str = "USD"):
        super().__init__(session, clock, event_bus)
        self._base_currency = CurrencyRegistry.validate(base_currency)

    # -- creation -----------------------------------------------------------

    def create_account(
        self,
        code: str,
        name: str,
        ledger_group: LedgerGroup | str,
        actor_id: UUID,
        parent_id: UUID | None = None,
        currency: str | None = None,
        description: str | None = None,
    ) -> LedgerAccount:
        """
        Register a new account.

        Raises:
            DuplicateAccountCodeError: ``code`` already registered.
            AccountNotFoundError: ``parent_id`` does not exist.
            CyclicHierarchyError: the parent chain would loop.
            InvalidCurrencyError: unknown currency code.
        """
        code = code.strip()
        group = LedgerGroup(ledger_group)
        account_currency = CurrencyRegistry.validate(currency or self._base_currency)

        existing = self.session.execute(
            select(LedgerAccount.id).where(LedgerAccount.code == code)
        ).first()
        if existing is not None:
            raise DuplicateAccountCodeError(code)

        account_id = uuid4()
        if parent_id is not None:
            self.get_account(parent_id)
            self._assert_no_cycle(account_id, parent_id)

        account = LedgerAccount(
            id=account_id,
            code=code,
            name=name,
            description=description,
            ledger_group=group,
            parent_id=parent_id,
            currency=account_currency,
            is_active=True,
            balance=Decimal("0"),
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_code": code,
                "ledger_group": group.value,
                "currency": account_currency,
                "parent_id": str(parent_id) if parent_id else None,
                "actor_id": str(actor_id),
            },
        )
        return account

    # -- lookups ------------------------------------------------------------

    def get_account(self, account_id: UUID) -> LedgerAccount:
        account = self.session.get(LedgerAccount, account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def get_account_by_code(self, code: str) -> LedgerAccount:
        account = self.session.execute(
            select(LedgerAccount).where(LedgerAccount.code == code)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(code)
        return account

    def list_accounts(
        self,
        ledger_group: LedgerGroup | None = None,
        active_only: bool = False,
    ) -> list[LedgerAccount]:
        stmt = select(LedgerAccount).order_by(LedgerAccount.code)
        if ledger_group is not None:
            stmt = stmt.where(LedgerAccount.ledger_group == LedgerGroup(ledger_group))
        if active_only:
            stmt = stmt.where(LedgerAccount.is_active.is_(True))
        return list(self.session.execute(stmt).scalars().all())

    def get_balance(self, account_id: UUID, as_of_date: date | None = None) -> Decimal:
        """
        Signed normal balance of an account.

        Without ``as_of_date`` this is the running balance.  With it, the
        balance is rebuilt from every transaction posted on or before that
        date.
        """
        account = self.get_account(account_id)
        if as_of_date is None:
            return account.balance
        return LedgerSelector(self.session).balance_as_of(account_id, as_of_date)

    # -- maintenance --------------------------------------------------------

    def rename_account(
        self,
        account_id: UUID,
        name: str,
        actor_id: UUID,
        description: str | None = None,
    ) -> LedgerAccount:
        account = self.get_account(account_id)
        account.name = name
        if description is not None:
            account.description = description
        account.updated_by_id = actor_id
        self.session.flush()
        return account

    def move_account(self, account_id: UUID, new_parent_id: UUID | None, actor_id: UUID) -> LedgerAccount:
        """Re-parent an account, rejecting moves that would create a cycle."""
        account = self.get_account(account_id)
        if new_parent_id is not None:
            self.get_account(new_parent_id)
            self._assert_no_cycle(account_id, new_parent_id)
        old_parent_id = account.parent_id
        account.parent_id = new_parent_id
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "account_moved",
            extra={
                "account_id": str(account_id),
                "from_parent_id": str(old_parent_id) if old_parent_id else None,
                "to_parent_id": str(new_parent_id) if new_parent_id else None,
                "actor_id": str(actor_id),
            },
        )
        return account

    def deactivate(self, account_id: UUID, actor_id: UUID) -> LedgerAccount:
        """
        Deactivate an account so no new postings can reference it.

        Raises:
            AccountInUseError: PENDING transactions still reference the account.
        """
        account = self.get_account(account_id)
        if not account.is_active:
            return account

        pending = self.pending_reference_count(account_id)
        if pending:
            logger.warning(
                "account_deactivation_blocked",
                extra={"account_id": str(account_id), "pending_count": pending},
            )
            raise AccountInUseError(str(account_id), pending)

        account.is_active = False
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "account_deactivated",
            extra={"account_id": str(account_id), "account_code": account.code,
                   "actor_id": str(actor_id)},
        )
        return account

    def activate(self, account_id: UUID, actor_id: UUID) -> LedgerAccount:
        account = self.get_account(account_id)
        if not account.is_active:
            account.is_active = True
            account.updated_by_id = actor_id
            self.session.flush()
            logger.info(
                "account_activated",
                extra={"account_id": str(account_id), "actor_id": str(actor_id)},
            )
        return account

    def pending_reference_count(self, account_id: UUID) -> int:
        return self.session.execute(
            select(func.count(LedgerTransaction.id)).where(
                LedgerTransaction.status == TransactionStatus.PENDING,
                or_(
                    LedgerTransaction.debit_account_id == account_id,
                    LedgerTransaction.credit_account_id == account_id,
                    LedgerTransaction.account_id == account_id,
                ),
            )
        ).scalar_one()

    def _assert_no_cycle(self, account_id: UUID, parent_id: UUID) -> None:
        # Walk up from the proposed parent; meeting account_id means a loop.
        seen: set[UUID] = set()
        current: UUID | None = parent_id
        while current is not None:
            if current == account_id:
                raise CyclicHierarchyError(str(account_id), str(parent_id))
            if current in seen:
                logger.error(
                    "integrity_violation_detected",
                    extra={"entity_type": "LedgerAccount", "entity_id": str(current),
                           "reason": "existing parent chain loops"},
                )
                raise LedgerIntegrityError("LedgerAccount", str(current), "existing parent chain loops")
            seen.add(current)
            current = self.session.execute(
                select(LedgerAccount.parent_id).where(LedgerAccount.id == current)
            ).scalar_one_or_none()
