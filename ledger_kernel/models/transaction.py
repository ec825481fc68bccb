"""
Ledger transaction and transaction group models.

A LedgerTransaction is either double-entry (debit account + credit
account) or single-entry (one account + ``transaction_state``).  It is
created PENDING, POSTED exactly once, and may be REVERSED by a separate,
swapped transaction that records ``reversal_of_id``.  Rows are append-mostly:
after POSTED only ``status`` moves (to REVERSED).

A LedgerTransactionGroup owns an ordered set of member transactions and is
posted or reversed as one atomic unit.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.ledger import (
    EntrySide,
    JournalEntryType,
    TransactionLeg,
    TransactionStatus,
)
from ledger_kernel.models.account import LedgerAccount


class LedgerTransactionGroup(TrackedBase):
    """
    Journal entry: a batch of member transactions posted atomically.

    Contract:
        May only be POSTED while ``balanced``.  Once POSTED it is immutable
        except for the group-level reverse, which reverses every member.

    Guarantees:
        - ``lines`` are ordered by ``line_number``.
        - ``status`` mirrors the members' lifecycle.
    """

    __tablename__ = "ledger_transaction_groups"

    __table_args__ = (
        UniqueConstraint("group_number", name="uq_ledger_group_number"),
        Index("idx_ledger_group_status", "status"),
    )

    group_number: Mapped[str] = mapped_column(String(30), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    group_date: Mapped[date] = mapped_column(nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(TransactionStatus, native_enum=False, length=20),
        default=TransactionStatus.PENDING,
        nullable=False,
    )

    posted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list["LedgerTransaction"]] = relationship(
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="LedgerTransaction.line_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<LedgerTransactionGroup {self.group_number} {self.status.value}>"

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit_total for line in self.lines), Decimal("0"))

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit_total for line in self.lines), Decimal("0"))

    @property
    def balanced(self) -> bool:
        return self.total_debit == self.total_credit


class LedgerTransaction(TrackedBase):
    """
    A single ledger movement.

    Contract:
        Exactly one shape is populated: (debit_account_id, credit_account_id)
        for DOUBLE_ENTRY, or (account_id, transaction_state) for SINGLE_ENTRY.
        ``amount`` is strictly positive.

    Guarantees:
        - After POSTED no field changes except ``status`` moving to REVERSED.
        - A reversal never edits the original; it is a new row with
          ``reversal_of_id`` set and the original's ``owner_type``.
        - An owned transaction is posted, reversed or deleted only by the
          service that owns it.
    """

    __tablename__ = "ledger_transactions"

    __table_args__ = (
        UniqueConstraint("transaction_number", name="uq_ledger_transaction_number"),
        CheckConstraint("amount > 0", name="ck_ledger_transaction_amount_positive"),
        CheckConstraint(
            "(journal_entry_type = 'DOUBLE_ENTRY' AND debit_account_id IS NOT NULL"
            " AND credit_account_id IS NOT NULL AND account_id IS NULL"
            " AND transaction_state IS NULL)"
            " OR (journal_entry_type = 'SINGLE_ENTRY' AND account_id IS NOT NULL"
            " AND transaction_state IS NOT NULL AND debit_account_id IS NULL"
            " AND credit_account_id IS NULL)",
            name="ck_ledger_transaction_shape",
        ),
        Index("idx_ledger_txn_status", "status"),
        Index("idx_ledger_txn_date", "transaction_date"),
        Index("idx_ledger_txn_group", "group_id"),
        Index("idx_ledger_txn_debit", "debit_account_id"),
        Index("idx_ledger_txn_credit", "credit_account_id"),
        Index("idx_ledger_txn_account", "account_id"),
    )

    transaction_number: Mapped[str] = mapped_column(String(30), nullable=False)
    transaction_date: Mapped[date] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(TransactionStatus, native_enum=False, length=20),
        default=TransactionStatus.PENDING,
        nullable=False,
    )

    journal_entry_type: Mapped[JournalEntryType] = mapped_column(
        SAEnum(JournalEntryType, native_enum=False, length=20),
        nullable=False,
    )

    # Double-entry shape
    debit_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("ledger_accounts.id"), nullable=True,
    )
    credit_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("ledger_accounts.id"), nullable=True,
    )

    # Single-entry shape
    account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("ledger_accounts.id"), nullable=True,
    )
    transaction_state: Mapped[EntrySide | None] = mapped_column(
        SAEnum(EntrySide, native_enum=False, length=10),
        nullable=True,
    )

    group_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("ledger_transaction_groups.id"), nullable=True,
    )
    line_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Aggregate that drives this transaction's lifecycle ("Voucher",
    # "Invoice", "Bill", "LedgerTransactionGroup"); None when standalone.
    owner_type: Mapped[str | None] = mapped_column(String(30), nullable=True)

    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("ledger_transactions.id"), nullable=True,
    )

    posted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    posted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    group: Mapped[LedgerTransactionGroup | None] = relationship(back_populates="lines")
    debit_account: Mapped[LedgerAccount | None] = relationship(foreign_keys=[debit_account_id])
    credit_account: Mapped[LedgerAccount | None] = relationship(foreign_keys=[credit_account_id])
    account: Mapped[LedgerAccount | None] = relationship(foreign_keys=[account_id])

    def __repr__(self) -> str:
        return f"<LedgerTransaction {self.transaction_number} {self.status.value} {self.amount}>"

    @property
    def is_double_entry(self) -> bool:
        return self.journal_entry_type is JournalEntryType.DOUBLE_ENTRY

    def legs(self) -> list[TransactionLeg]:
        """Account-side effects of posting this transaction."""
        if self.is_double_entry:
            return [
                TransactionLeg(self.debit_account_id, EntrySide.DEBIT, self.amount),
                TransactionLeg(self.credit_account_id, EntrySide.CREDIT, self.amount),
            ]
        return [TransactionLeg(self.account_id, self.transaction_state, self.amount)]

    def account_ids(self) -> list[UUID]:
        return [leg.account_id for leg in self.legs() if leg.account_id is not None]

    @property
    def debit_total(self) -> Decimal:
        return sum((leg.amount for leg in self.legs() if leg.side is EntrySide.DEBIT), Decimal("0"))

    @property
    def credit_total(self) -> Decimal:
        return sum((leg.amount for leg in self.legs() if leg.side is EntrySide.CREDIT), Decimal("0"))
