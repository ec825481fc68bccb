"""
Voucher ORM Models (``ledger_modules.vouchers.orm``).

Responsibility
--------------
Persistence for vouchers and their explicit type-migration audit trail.

A voucher and its ledger transaction share one identity: the paired
``LedgerTransaction`` is created with ``id == voucher.id`` and referenced
through ``ledger_transaction_id`` so the voucher can release it when a
pending voucher is cancelled or deleted.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ledger_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``ledger_kernel``
outside the ORM registry.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Enum as SAEnum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.models.transaction import LedgerTransaction
from ledger_modules.vouchers.models import (
    PaymentMethod,
    VoucherAccounts,
    VoucherParty,
    VoucherStatus,
    VoucherTo,
    VoucherType,
    accounts_from_ids,
)


class VoucherModel(TrackedBase):
    """
    ORM model for vouchers.

    Guarantees:
        - voucher_number is unique (uq_voucher_number).
        - At most one of client_id / vendor_id / staff_id is set.
        - ``primary_account_id`` holds the cash/source/debit account;
          ``counter_account_id`` the expense/income/destination/credit
          account, NULL for deposits.
    """

    __tablename__ = "vouchers"

    __table_args__ = (
        UniqueConstraint("voucher_number", name="uq_voucher_number"),
        Index("idx_voucher_status", "status"),
        Index("idx_voucher_type", "voucher_type"),
        CheckConstraint("amount > 0", name="chk_voucher_amount_positive"),
        CheckConstraint(
            "(CASE WHEN client_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN vendor_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN staff_id IS NULL THEN 0 ELSE 1 END) <= 1",
            name="chk_voucher_single_party",
        ),
    )

    voucher_number: Mapped[str] = mapped_column(String(30), nullable=False)
    voucher_type: Mapped[VoucherType] = mapped_column(
        SAEnum(VoucherType, native_enum=False, length=20), nullable=False
    )
    voucher_to: Mapped[VoucherTo] = mapped_column(
        SAEnum(VoucherTo, native_enum=False, length=20), nullable=False
    )
    status: Mapped[VoucherStatus] = mapped_column(
        SAEnum(VoucherStatus, native_enum=False, length=20),
        default=VoucherStatus.PENDING,
        nullable=False,
    )
    voucher_date: Mapped[date] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_method: Mapped[PaymentMethod | None] = mapped_column(
        SAEnum(PaymentMethod, native_enum=False, length=20), nullable=True
    )

    # External party references; parties live outside the ledger.
    client_id: Mapped[UUID | None] = mapped_column(nullable=True)
    vendor_id: Mapped[UUID | None] = mapped_column(nullable=True)
    staff_id: Mapped[UUID | None] = mapped_column(nullable=True)
    beneficiary_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    primary_account_id: Mapped[UUID] = mapped_column(ForeignKey("ledger_accounts.id"), nullable=False)
    counter_account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("ledger_accounts.id"), nullable=True
    )

    ledger_transaction_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("ledger_transactions.id"), nullable=True
    )

    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    posted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)

    ledger_transaction: Mapped[LedgerTransaction | None] = relationship(
        foreign_keys=[ledger_transaction_id]
    )
    migrations: Mapped[list["VoucherTypeMigrationModel"]] = relationship(
        back_populates="voucher",
        cascade="all, delete-orphan",
        order_by="VoucherTypeMigrationModel.created_at",
    )

    @property
    def accounts(self) -> VoucherAccounts:
        return accounts_from_ids(self.voucher_type, self.primary_account_id, self.counter_account_id)

    @property
    def party(self) -> VoucherParty:
        return VoucherParty(
            voucher_to=self.voucher_to,
            client_id=self.client_id,
            vendor_id=self.vendor_id,
            staff_id=self.staff_id,
            beneficiary_name=self.beneficiary_name,
        )

    def __repr__(self) -> str:
        return f"<VoucherModel {self.voucher_number} {self.voucher_type.value} {self.status.value}>"


class VoucherTypeMigrationModel(TrackedBase):
    """
    Audit row for an explicit voucher type change.

    Append-only: one row per migrate_type call; ``created_by_id`` is the actor.
    """

    __tablename__ = "voucher_type_migrations"

    __table_args__ = (Index("idx_voucher_migration_voucher", "voucher_id"),)

    voucher_id: Mapped[UUID] = mapped_column(ForeignKey("vouchers.id"), nullable=False)
    from_type: Mapped[VoucherType] = mapped_column(
        SAEnum(VoucherType, native_enum=False, length=20), nullable=False
    )
    to_type: Mapped[VoucherType] = mapped_column(
        SAEnum(VoucherType, native_enum=False, length=20), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    voucher: Mapped[VoucherModel] = relationship(back_populates="migrations")

    def __repr__(self) -> str:
        return f"<VoucherTypeMigrationModel {self.from_type.value}->{self.to_type.value}>"
