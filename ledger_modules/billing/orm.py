"""
Billing ORM Models (``ledger_modules.billing.orm``).

Responsibility
--------------
Persistence for invoices and bills, their line items and their payments.

``subtotal``, ``discount_amount``, ``tax_amount``, ``total_amount``,
``amount_paid``, ``amount_due`` and ``status`` are snapshots written only
by the billing service's recompute step, from lines and payments, after
every mutation.  No public operation accepts them as input.

Architecture position
---------------------
**Modules layer** -- persistence.  Payment rows are guarded by
``ledger_modules.billing.immutability``.

Invariants enforced
-------------------
* A document owns its lines and payments (``cascade="all, delete-orphan"``).
* Payment rows are never updated (ORM listener); corrections delete them.
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

from ledger_engines.document_status import BillStatus, InvoiceStatus
from ledger_kernel.db.base import TrackedBase
from ledger_modules.vouchers.models import PaymentMethod

_ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------


class InvoiceModel(TrackedBase):
    """
    ORM model for customer invoices.

    Guarantees:
        - (number_prefix, number) is unique (uq_invoice_number).
        - Monetary fields use Decimal (Numeric(38,9) via type_annotation_map).
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("number_prefix", "number", name="uq_invoice_number"),
        Index("idx_invoice_client", "client_id"),
        Index("idx_invoice_status", "status"),
        Index("idx_invoice_due_date", "due_date"),
    )

    number_prefix: Mapped[str] = mapped_column(String(20), nullable=False)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    client_id: Mapped[UUID] = mapped_column(nullable=False)
    issue_date: Mapped[date] = mapped_column(nullable=False)
    due_date: Mapped[date] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    purchase_order_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    receivable_account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("ledger_accounts.id"), nullable=True
    )

    status: Mapped[InvoiceStatus] = mapped_column(
        SAEnum(InvoiceStatus, native_enum=False, length=20),
        default=InvoiceStatus.DRAFT,
        nullable=False,
    )
    subtotal: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)
    amount_due: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)

    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    viewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list["InvoiceLineModel"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineModel.line_number",
        lazy="selectin",
    )
    payments: Mapped[list["InvoicePaymentModel"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoicePaymentModel.payment_date",
        lazy="selectin",
    )

    @property
    def invoice_number(self) -> str:
        return f"{self.number_prefix}-{self.number:06d}"

    @property
    def counterparty_id(self) -> UUID:
        return self.client_id

    @property
    def document_number(self) -> str:
        return self.invoice_number

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_number} {self.status.value}>"


class InvoiceLineModel(TrackedBase):
    __tablename__ = "invoice_lines"

    __table_args__ = (
        UniqueConstraint("invoice_id", "line_number", name="uq_invoice_line_number"),
        CheckConstraint("quantity > 0", name="chk_invoice_line_quantity_positive"),
    )

    invoice_id: Mapped[UUID] = mapped_column(ForeignKey("invoices.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)
    discount_percent: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)

    invoice: Mapped[InvoiceModel] = relationship(back_populates="lines")


class InvoicePaymentModel(TrackedBase):
    """
    A payment received against an invoice.  Immutable once recorded.

    ``ledger_transaction_id`` is set when the payment was posted to the
    ledger (pay-in account and receivable account both known).
    """

    __tablename__ = "invoice_payments"

    __table_args__ = (
        Index("idx_invoice_payment_invoice", "invoice_id"),
        CheckConstraint("amount > 0", name="chk_invoice_payment_amount_positive"),
    )

    invoice_id: Mapped[UUID] = mapped_column(ForeignKey("invoices.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_date: Mapped[date] = mapped_column(nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(PaymentMethod, native_enum=False, length=20), nullable=False
    )
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pay_in_account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("ledger_accounts.id"), nullable=True
    )
    ledger_transaction_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("ledger_transactions.id"), nullable=True
    )

    invoice: Mapped[InvoiceModel] = relationship(back_populates="payments")

    @property
    def settlement_account_id(self) -> UUID | None:
        return self.pay_in_account_id


# ---------------------------------------------------------------------------
# Bills
# ---------------------------------------------------------------------------


class BillModel(TrackedBase):
    """
    ORM model for vendor bills.

    Guarantees:
        - bill_number is unique (uq_bill_number).
    """

    __tablename__ = "bills"

    __table_args__ = (
        UniqueConstraint("bill_number", name="uq_bill_number"),
        Index("idx_bill_vendor", "vendor_id"),
        Index("idx_bill_status", "status"),
        Index("idx_bill_due_date", "due_date"),
    )

    bill_number: Mapped[str] = mapped_column(String(30), nullable=False)
    vendor_id: Mapped[UUID] = mapped_column(nullable=False)
    issue_date: Mapped[date] = mapped_column(nullable=False)
    due_date: Mapped[date] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    payable_account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("ledger_accounts.id"), nullable=True
    )

    status: Mapped[BillStatus] = mapped_column(
        SAEnum(BillStatus, native_enum=False, length=20),
        default=BillStatus.DRAFT,
        nullable=False,
    )
    subtotal: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)
    amount_due: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)

    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list["BillLineModel"]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillLineModel.line_number",
        lazy="selectin",
    )
    payments: Mapped[list["BillPaymentModel"]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillPaymentModel.payment_date",
        lazy="selectin",
    )

    @property
    def counterparty_id(self) -> UUID:
        return self.vendor_id

    @property
    def document_number(self) -> str:
        return self.bill_number

    def __repr__(self) -> str:
        return f"<BillModel {self.bill_number} {self.status.value}>"


class BillLineModel(TrackedBase):
    __tablename__ = "bill_lines"

    __table_args__ = (
        UniqueConstraint("bill_id", "line_number", name="uq_bill_line_number"),
        CheckConstraint("quantity > 0", name="chk_bill_line_quantity_positive"),
    )

    bill_id: Mapped[UUID] = mapped_column(ForeignKey("bills.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(default=_ZERO, nullable=False)

    bill: Mapped[BillModel] = relationship(back_populates="lines")


class BillPaymentModel(TrackedBase):
    """A payment made against a bill.  Immutable once recorded."""

    __tablename__ = "bill_payments"

    __table_args__ = (
        Index("idx_bill_payment_bill", "bill_id"),
        CheckConstraint("amount > 0", name="chk_bill_payment_amount_positive"),
    )

    bill_id: Mapped[UUID] = mapped_column(ForeignKey("bills.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_date: Mapped[date] = mapped_column(nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(PaymentMethod, native_enum=False, length=20), nullable=False
    )
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pay_out_account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("ledger_accounts.id"), nullable=True
    )
    ledger_transaction_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("ledger_transactions.id"), nullable=True
    )

    bill: Mapped[BillModel] = relationship(back_populates="payments")

    @property
    def settlement_account_id(self) -> UUID | None:
        return self.pay_out_account_id
