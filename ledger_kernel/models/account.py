"""
Ledger account model.

An account is referenced, never owned, by transactions, vouchers and
billing documents.  Its ``balance`` is the running signed normal balance
and is written only by the Posting Engine's commit path.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Enum as SAEnum, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.ledger import EntrySide, LedgerGroup


class LedgerAccount(TrackedBase):
    """
    Chart of accounts entry.

    Contract:
        ``code`` is unique.  Once posted history references the account its
        code, ledger_group and currency MUST NOT change.

    Guarantees:
        - ``balance`` is positive on the account's normal side.
        - ``parent_id`` forms a tree; the registry rejects cycles.

    Non-goals:
        - Does not validate hierarchy itself; AccountRegistry does.
    """

    __tablename__ = "ledger_accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_ledger_account_code"),
        Index("idx_ledger_account_group", "ledger_group"),
        Index("idx_ledger_account_active", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    ledger_group: Mapped[LedgerGroup] = mapped_column(
        SAEnum(LedgerGroup, native_enum=False, length=20),
        nullable=False,
    )

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("ledger_accounts.id"),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    balance: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    parent: Mapped["LedgerAccount | None"] = relationship(
        remote_side="LedgerAccount.id",
        lazy="select",
    )

    def __repr__(self) -> str:
        return f"<LedgerAccount {self.code}: {self.name}>"

    @property
    def normal_balance(self) -> EntrySide:
        return self.ledger_group.normal_balance

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance is EntrySide.DEBIT
