"""
Ledger vocabulary -- account groups, sides, statuses and the sign convention.

Balances are signed per normal-balance convention: positive means the
account carries a balance on its normal side.  ASSET and EXPENSE are
debit-normal; LIABILITY, EQUITY, INCOME and REVENUE are credit-normal.
REVENUE is an alias group of INCOME and behaves identically.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class LedgerGroup(str, Enum):
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    INCOME = "INCOME"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    @property
    def normal_balance(self) -> "EntrySide":
        if self in (LedgerGroup.ASSET, LedgerGroup.EXPENSE):
            return EntrySide.DEBIT
        return EntrySide.CREDIT

    @property
    def is_income(self) -> bool:
        return self in (LedgerGroup.INCOME, LedgerGroup.REVENUE)


class EntrySide(str, Enum):
    """Direction of a leg; also the ``transaction_state`` of single-entry lines."""

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"

    def opposite(self) -> "EntrySide":
        return EntrySide.CREDIT if self is EntrySide.DEBIT else EntrySide.DEBIT


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    POSTED = "POSTED"
    REVERSED = "REVERSED"


class JournalEntryType(str, Enum):
    DOUBLE_ENTRY = "DOUBLE_ENTRY"
    SINGLE_ENTRY = "SINGLE_ENTRY"


@dataclass(frozen=True)
class TransactionLeg:
    """One account-side effect of a transaction."""

    account_id: UUID
    side: EntrySide
    amount: Decimal


def signed_delta(group: LedgerGroup, side: EntrySide, amount: Decimal) -> Decimal:
    """Balance change caused by posting ``amount`` on ``side`` of an account in ``group``.

    A leg on the account's normal side increases its balance; a leg on the
    other side decreases it.
    """
    return amount if side is group.normal_balance else -amount
