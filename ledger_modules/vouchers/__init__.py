"""
Voucher Workflow Module (``ledger_modules.vouchers``).

Typed, party-aware wrappers around a single ledger transaction:
PAYMENT, RECEIPT and DEPOSIT by default, CONTRA and JOURNAL when enabled.
A voucher is created PENDING with its paired PENDING transaction, approved,
then posted through the kernel PostingEngine.  Cancelling a pending or
approved voucher discards the transaction unposted.
"""

from ledger_modules.vouchers.config import VoucherConfig
from ledger_modules.vouchers.models import (
    ContraAccounts,
    DepositAccounts,
    JournalAccounts,
    OperationResult,
    PaymentAccounts,
    PaymentMethod,
    ReceiptAccounts,
    VoucherParty,
    VoucherStatus,
    VoucherTo,
    VoucherType,
)
from ledger_modules.vouchers.workflows import VOUCHER_WORKFLOW

__all__ = [
    "ContraAccounts",
    "DepositAccounts",
    "JournalAccounts",
    "OperationResult",
    "PaymentAccounts",
    "PaymentMethod",
    "ReceiptAccounts",
    "VOUCHER_WORKFLOW",
    "VoucherConfig",
    "VoucherParty",
    "VoucherStatus",
    "VoucherTo",
    "VoucherType",
]
