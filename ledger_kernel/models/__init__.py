"""ORM models of the ledger kernel."""

from ledger_kernel.models.account import LedgerAccount
from ledger_kernel.models.transaction import LedgerTransaction, LedgerTransactionGroup

__all__ = ["LedgerAccount", "LedgerTransaction", "LedgerTransactionGroup"]
