"""
Billing append-only guards (``ledger_modules.billing.immutability``).

Invoice and bill payments are never updated once recorded.  A correction
deletes the payment, which reverses its ledger transaction, and records a
new one.  The listeners are handed to the kernel through
``register_immutability_listeners(extra_listeners=...)``.
"""

from ledger_kernel.db.immutability import append_only_update_guard
from ledger_modules.billing.orm import BillPaymentModel, InvoicePaymentModel

PAYMENT_IMMUTABLE_REASON = "payments are immutable once recorded"


def payment_immutability_listeners() -> list[tuple]:
    return [
        (InvoicePaymentModel, "before_update",
         append_only_update_guard("InvoicePayment", PAYMENT_IMMUTABLE_REASON)),
        (BillPaymentModel, "before_update",
         append_only_update_guard("BillPayment", PAYMENT_IMMUTABLE_REASON)),
    ]
