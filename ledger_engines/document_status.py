"""
Document Status Derivation Engine.

Pure functions with deterministic behavior. No I/O.

The lifecycle status of an invoice or bill is never set directly: it is
recomputed from the document's payments, due date and lifecycle flags on
every mutation and by the periodic overdue check.  Identical inputs always
yield the same status.

Usage:
    from ledger_engines.document_status import DocumentStatusInputs, derive_invoice_status

    status = derive_invoice_status(DocumentStatusInputs(
        total_amount=Decimal("1000"),
        amount_paid=Decimal("400"),
        due_date=date(2026, 1, 10),
        today=date(2026, 1, 20),
    ))    # InvoiceStatus.OVERDUE
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    VIEWED = "VIEWED"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class BillStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class DocumentStatusInputs:
    """
    Everything status derivation looks at.

    ``sent``/``viewed`` apply to invoices, ``submitted`` to bills; the other
    flag set is ignored.
    """

    total_amount: Decimal
    amount_paid: Decimal
    due_date: date
    today: date
    cancelled: bool = False
    sent: bool = False
    viewed: bool = False
    submitted: bool = False

    @property
    def is_past_due(self) -> bool:
        return self.today > self.due_date


def derive_invoice_status(inputs: DocumentStatusInputs) -> InvoiceStatus:
    if inputs.cancelled:
        return InvoiceStatus.CANCELLED
    if inputs.amount_paid >= inputs.total_amount:
        return InvoiceStatus.PAID
    if inputs.amount_paid > 0:
        return InvoiceStatus.OVERDUE if inputs.is_past_due else InvoiceStatus.PARTIAL
    if inputs.is_past_due:
        return InvoiceStatus.OVERDUE
    if inputs.viewed:
        return InvoiceStatus.VIEWED
    if inputs.sent:
        return InvoiceStatus.SENT
    return InvoiceStatus.DRAFT


def derive_bill_status(inputs: DocumentStatusInputs) -> BillStatus:
    if inputs.cancelled:
        return BillStatus.CANCELLED
    if inputs.amount_paid >= inputs.total_amount:
        return BillStatus.PAID
    if inputs.amount_paid > 0:
        return BillStatus.OVERDUE if inputs.is_past_due else BillStatus.PARTIAL
    if inputs.is_past_due:
        return BillStatus.OVERDUE
    if inputs.submitted:
        return BillStatus.PENDING
    return BillStatus.DRAFT
