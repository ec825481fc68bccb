"""
Voucher Module Service (``ledger_modules.vouchers.service``).

Responsibility
--------------
Creates vouchers with their paired PENDING ledger transaction, walks them
through the approval workflow, and posts or discards the transaction
through the kernel ``PostingEngine``.

Architecture position
---------------------
**Modules layer**.  ``VoucherService`` is the sole public entry point for
voucher operations.  Balance changes are delegated to ``PostingEngine``.

Invariants enforced
-------------------
* The paired transaction shares the voucher's id and is posted only from
  APPROVED.
* ``post`` is two-phase inside one SAVEPOINT: post the transaction, then
  flip the voucher to POSTED; if either step fails neither state changes.
* A cancelled voucher never produces a posted transaction: cancelling
  deletes the still-PENDING transaction.
* ``voucher_type`` changes only through ``migrate_type``, which writes a
  ``VoucherTypeMigrationModel`` audit row.

Failure modes
-------------
* ``VoucherTypeDisabledError``, ``InvalidAccountShapeError``,
  ``InvalidPartyError``, ``AccountNotFoundError`` -- nothing written.
* ``InvalidStateTransitionError`` -- action not allowed from the current status.
* ``PostingValidationError`` -- the paired transaction failed validation at post.

Audit relevance
---------------
voucher_created / voucher_approved / voucher_posted / voucher_cancelled /
voucher_type_migrated are logged with the acting user and emitted as
domain events after commit.

Usage::

    service = VoucherService(session, clock=clock, event_bus=bus)
    voucher = service.create_voucher(
        voucher_type=VoucherType.PAYMENT,
        party=VoucherParty(VoucherTo.VENDOR, vendor_id=vendor_id),
        amount=Decimal("500.00"),
        accounts=PaymentAccounts(cash.id, rent.id),
        description="March rent",
        actor_id=actor_id,
    )
    service.approve(voucher.id, actor_id)
    service.post(voucher.id, actor_id)
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select

from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    InvalidAccountShapeError,
    InvalidStateTransitionError,
    PostingValidationError,
    VoucherNotFoundError,
    VoucherTypeDisabledError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import LedgerAccount
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.posting_engine import PostingEngine
from ledger_kernel.services.sequence_service import SequenceService
from ledger_modules.vouchers.config import VoucherConfig
from ledger_modules.vouchers.models import (
    OperationResult,
    PaymentMethod,
    VoucherAccounts,
    VoucherParty,
    VoucherStatus,
    VoucherType,
    check_party,
    check_shape_matches,
)
from ledger_modules.vouchers.orm import VoucherModel, VoucherTypeMigrationModel
from ledger_modules.vouchers.workflows import VOUCHER_WORKFLOW

logger = get_logger("modules.vouchers.service")

OWNER_TYPE = "Voucher"


class VoucherService(BaseService[VoucherModel]):
    """
    Voucher Workflow.

    Contract
    --------
    Runs inside the caller's transaction and flushes; never commits.

    Guarantees
    ----------
    * ``post`` and ``cancel`` on a voucher already in that terminal state
      return ``OperationResult(no_op=True)`` and re-apply nothing.
    * Clock is injectable for deterministic testing.

    Non-goals
    ---------
    * Does NOT reverse posted vouchers; corrections are separate ledger
      reversals through ``PostingEngine.reverse``.
    """

    def __init__(
        self,
        session,
        clock=None,
        event_bus=None,
        config: VoucherConfig | None = None,
        base_currency: str = "USD",
        posting_engine: PostingEngine | None = None,
    ):
        super().__init__(session, clock, event_bus)
        self._config = config or VoucherConfig()
        self._base_currency = CurrencyRegistry.validate(base_currency)
        self._engine = posting_engine or PostingEngine(session, self._clock, event_bus)
        self._sequences = SequenceService(session)

    # -- creation -----------------------------------------------------------

    def create_voucher(
        self,
        voucher_type: VoucherType | str,
        party: VoucherParty,
        amount: Decimal,
        accounts: VoucherAccounts,
        description: str,
        actor_id: UUID,
        voucher_date: date | None = None,
        currency: str | None = None,
        payment_method: PaymentMethod | None = None,
        reference: str | None = None,
    ) -> VoucherModel:
        """
        Create a PENDING voucher and its paired PENDING ledger transaction.

        Raises:
            VoucherTypeDisabledError: the type is not enabled.
            InvalidAccountShapeError: accounts do not fit the type.
            InvalidPartyError: the party does not fit the type.
            AccountNotFoundError: an account does not exist.
            PostingValidationError: ``amount`` is not positive.
        """
        voucher_type = VoucherType(voucher_type)
        if not self._config.is_enabled(voucher_type):
            raise VoucherTypeDisabledError(voucher_type.value)
        self._check_accounts(voucher_type, accounts)
        check_party(voucher_type, party)

        voucher_id = uuid4()
        if not isinstance(amount, Decimal):
            raise TypeError(f"amount must be Decimal, got {type(amount).__name__}")
        if amount <= 0:
            raise PostingValidationError(str(voucher_id), ["amount_not_positive"])
        voucher_date = voucher_date or self._clock.today()
        currency = CurrencyRegistry.validate(currency or self._base_currency)
        primary_id, counter_id = accounts.account_ids()

        voucher = VoucherModel(
            id=voucher_id,
            voucher_number=self._sequences.next_number(
                f"voucher_{voucher_type.value.lower()}", self._config.number_prefixes[voucher_type]
            ),
            voucher_type=voucher_type,
            voucher_to=party.voucher_to,
            status=VoucherStatus.PENDING,
            voucher_date=voucher_date,
            amount=amount,
            currency=currency,
            description=description,
            reference=reference,
            payment_method=payment_method,
            client_id=party.client_id,
            vendor_id=party.vendor_id,
            staff_id=party.staff_id,
            beneficiary_name=party.beneficiary_name,
            primary_account_id=primary_id,
            counter_account_id=counter_id,
            created_by_id=actor_id,
        )
        self.session.add(voucher)
        self.session.flush()

        txn = self._engine.create_transaction(
            transaction_id=voucher.id,
            transaction_date=voucher_date,
            description=description,
            amount=amount,
            currency=currency,
            actor_id=actor_id,
            reference=voucher.voucher_number,
            owner_type=OWNER_TYPE,
            **accounts.ledger_legs(),
        )
        voucher.ledger_transaction_id = txn.id
        self.session.flush()

        logger.info(
            "voucher_created",
            extra={
                "voucher_id": str(voucher.id),
                "voucher_number": voucher.voucher_number,
                "voucher_type": voucher_type.value,
                "voucher_to": party.voucher_to.value,
                "amount": str(amount),
                "currency": currency,
                "actor_id": str(actor_id),
            },
        )
        self._emit("voucher.created", "Voucher", voucher.id,
                   voucher_number=voucher.voucher_number, voucher_type=voucher_type.value)
        return voucher

    # -- lookups ------------------------------------------------------------

    def get_voucher(self, voucher_id: UUID) -> VoucherModel:
        voucher = self.session.get(VoucherModel, voucher_id)
        if voucher is None:
            raise VoucherNotFoundError(str(voucher_id))
        return voucher

    def list_vouchers(
        self,
        status: VoucherStatus | None = None,
        voucher_type: VoucherType | None = None,
    ) -> list[VoucherModel]:
        stmt = select(VoucherModel).order_by(VoucherModel.voucher_date, VoucherModel.voucher_number)
        if status is not None:
            stmt = stmt.where(VoucherModel.status == VoucherStatus(status))
        if voucher_type is not None:
            stmt = stmt.where(VoucherModel.voucher_type == VoucherType(voucher_type))
        return list(self.session.execute(stmt).scalars().all())

    # -- workflow -----------------------------------------------------------

    def approve(self, voucher_id: UUID, actor_id: UUID) -> OperationResult:
        """PENDING -> APPROVED."""
        voucher = self._load_for_update(voucher_id)
        self._require_transition(voucher, "approve")
        voucher.status = VoucherStatus.APPROVED
        voucher.approved_at = self._clock.now()
        voucher.approved_by_id = actor_id
        voucher.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "voucher_approved",
            extra={"voucher_id": str(voucher.id), "voucher_number": voucher.voucher_number,
                   "actor_id": str(actor_id)},
        )
        self._emit("voucher.approved", "Voucher", voucher.id, voucher_number=voucher.voucher_number)
        return OperationResult(voucher.id, voucher.status.value)

    def post(self, voucher_id: UUID, actor_id: UUID) -> OperationResult:
        """
        APPROVED -> POSTED, posting the paired transaction atomically.

        Raises:
            InvalidStateTransitionError: voucher is PENDING or CANCELLED.
            PostingValidationError: the paired transaction is not postable.
        """
        voucher = self._load_for_update(voucher_id)
        if voucher.status is VoucherStatus.POSTED:
            return self._no_op(voucher, "post")
        self._require_transition(voucher, "post")

        with self.session.begin_nested():
            posted = self._engine.post(voucher.ledger_transaction_id, actor_id, owner_type=OWNER_TYPE)
            voucher.status = VoucherStatus.POSTED
            voucher.posted_at = posted.posted_at
            voucher.updated_by_id = actor_id
            self.session.flush()

        logger.info(
            "voucher_posted",
            extra={
                "voucher_id": str(voucher.id),
                "voucher_number": voucher.voucher_number,
                "transaction_number": posted.transaction_number,
                "amount": str(voucher.amount),
                "actor_id": str(actor_id),
            },
        )
        self._emit("voucher.posted", "Voucher", voucher.id,
                   voucher_number=voucher.voucher_number, amount=str(voucher.amount))
        return OperationResult(voucher.id, voucher.status.value)

    def cancel(self, voucher_id: UUID, actor_id: UUID) -> OperationResult:
        """
        PENDING/APPROVED -> CANCELLED, discarding the unposted transaction.

        Raises:
            InvalidStateTransitionError: voucher is POSTED.
        """
        voucher = self._load_for_update(voucher_id)
        if voucher.status is VoucherStatus.CANCELLED:
            return self._no_op(voucher, "cancel")
        self._require_transition(voucher, "cancel")

        with self.session.begin_nested():
            self._discard_transaction(voucher, actor_id)
            voucher.status = VoucherStatus.CANCELLED
            voucher.cancelled_at = self._clock.now()
            voucher.updated_by_id = actor_id
            self.session.flush()

        logger.info(
            "voucher_cancelled",
            extra={"voucher_id": str(voucher.id), "voucher_number": voucher.voucher_number,
                   "actor_id": str(actor_id)},
        )
        self._emit("voucher.cancelled", "Voucher", voucher.id, voucher_number=voucher.voucher_number)
        return OperationResult(voucher.id, voucher.status.value)

    def delete_voucher(self, voucher_id: UUID, actor_id: UUID) -> None:
        """Hard-delete a PENDING voucher together with its paired transaction."""
        voucher = self._load_for_update(voucher_id)
        if voucher.status is not VoucherStatus.PENDING:
            raise InvalidStateTransitionError("Voucher", str(voucher.id), voucher.status.value, "delete")
        self._discard_transaction(voucher, actor_id)
        self.session.delete(voucher)
        self.session.flush()
        logger.info(
            "voucher_deleted",
            extra={"voucher_id": str(voucher_id), "actor_id": str(actor_id)},
        )

    def migrate_type(
        self,
        voucher_id: UUID,
        new_type: VoucherType | str,
        accounts: VoucherAccounts,
        reason: str,
        actor_id: UUID,
        party: VoucherParty | None = None,
    ) -> OperationResult:
        """
        Explicitly change a PENDING voucher's type.

        The new account shape and party are validated against the new type,
        the paired transaction's legs are rebuilt under the same identity,
        and a VoucherTypeMigrationModel row records from/to/reason/actor.

        Raises:
            InvalidStateTransitionError: voucher is not PENDING.
            ValueError: ``reason`` is blank.
        """
        new_type = VoucherType(new_type)
        voucher = self._load_for_update(voucher_id)
        if voucher.status is not VoucherStatus.PENDING:
            raise InvalidStateTransitionError(
                "Voucher", str(voucher.id), voucher.status.value, "migrate_type"
            )
        if not reason or not reason.strip():
            raise ValueError("a type migration requires a reason")
        if new_type is voucher.voucher_type:
            return self._no_op(voucher, "migrate_type")
        if not self._config.is_enabled(new_type):
            raise VoucherTypeDisabledError(new_type.value)

        party = party or voucher.party
        self._check_accounts(new_type, accounts)
        check_party(new_type, party)

        old_type = voucher.voucher_type
        self._engine.replace_legs(
            voucher.ledger_transaction_id, actor_id, owner_type=OWNER_TYPE, **accounts.ledger_legs()
        )
        primary_id, counter_id = accounts.account_ids()
        voucher.voucher_type = new_type
        voucher.voucher_to = party.voucher_to
        voucher.client_id = party.client_id
        voucher.vendor_id = party.vendor_id
        voucher.staff_id = party.staff_id
        voucher.beneficiary_name = party.beneficiary_name
        voucher.primary_account_id = primary_id
        voucher.counter_account_id = counter_id
        voucher.updated_by_id = actor_id
        voucher.migrations.append(
            VoucherTypeMigrationModel(
                from_type=old_type, to_type=new_type, reason=reason.strip(), created_by_id=actor_id
            )
        )
        self.session.flush()

        logger.warning(
            "voucher_type_migrated",
            extra={
                "voucher_id": str(voucher.id),
                "voucher_number": voucher.voucher_number,
                "from_type": old_type.value,
                "to_type": new_type.value,
                "reason": reason,
                "actor_id": str(actor_id),
            },
        )
        self._emit("voucher.type_migrated", "Voucher", voucher.id,
                   from_type=old_type.value, to_type=new_type.value)
        return OperationResult(voucher.id, voucher.status.value)

    # -- internals ----------------------------------------------------------

    def _check_accounts(self, voucher_type: VoucherType, accounts: VoucherAccounts) -> None:
        check_shape_matches(voucher_type, accounts)
        groups = {}
        for account_id in accounts.account_ids():
            if account_id is None:
                continue
            account = self.session.get(LedgerAccount, account_id)
            if account is None:
                raise AccountNotFoundError(str(account_id))
            if not account.is_active:
                raise InvalidAccountShapeError(voucher_type.value, f"account {account.code} is inactive")
            groups[account_id] = account.ledger_group
        accounts.validate(groups)

    def _discard_transaction(self, voucher: VoucherModel, actor_id: UUID) -> None:
        txn_id = voucher.ledger_transaction_id
        if txn_id is None:
            return
        voucher.ledger_transaction_id = None
        self.session.flush()
        self._engine.delete_transaction(txn_id, actor_id, owner_type=OWNER_TYPE)

    def _require_transition(self, voucher: VoucherModel, action: str) -> None:
        if VOUCHER_WORKFLOW.transition_for(voucher.status.value, action) is None:
            logger.info(
                "voucher_transition_rejected",
                extra={"voucher_id": str(voucher.id), "status": voucher.status.value, "action": action},
            )
            raise InvalidStateTransitionError("Voucher", str(voucher.id), voucher.status.value, action)

    def _no_op(self, voucher: VoucherModel, action: str) -> OperationResult:
        logger.info(
            "voucher_operation_no_op",
            extra={"voucher_id": str(voucher.id), "status": voucher.status.value, "action": action},
        )
        return OperationResult(
            voucher.id, voucher.status.value, no_op=True,
            message=f"voucher already {voucher.status.value}",
        )

    def _load_for_update(self, voucher_id: UUID) -> VoucherModel:
        voucher = self.session.execute(
            select(VoucherModel)
            .where(VoucherModel.id == voucher_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if voucher is None:
            raise VoucherNotFoundError(str(voucher_id))
        return voucher
