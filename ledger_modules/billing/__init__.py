"""
Billing Document Engine (``ledger_modules.billing``).

Customer invoices and vendor bills with line items, payments and a
derived status.  Services live in ``ledger_modules.billing.service`` and
receivable/payable aging in ``ledger_modules.billing.aging``; they are not
re-exported here so the ORM module stays importable on its own.
"""

from ledger_modules.billing.config import BillingConfig
from ledger_modules.billing.models import (
    BillStatus,
    InvoiceStatus,
    LineItemInput,
    OperationResult,
    PaymentMethod,
)
from ledger_modules.billing.workflows import BILL_WORKFLOW, INVOICE_WORKFLOW

__all__ = [
    "BILL_WORKFLOW",
    "BillStatus",
    "BillingConfig",
    "INVOICE_WORKFLOW",
    "InvoiceStatus",
    "LineItemInput",
    "OperationResult",
    "PaymentMethod",
]
