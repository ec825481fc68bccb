"""
Voucher Domain Models (``ledger_modules.vouchers.models``).

Responsibility
--------------
Enums for voucher type, party kind and status, plus one frozen
account-shape variant per voucher type.  Each variant knows which ledger
groups its accounts must belong to and which ledger legs it produces, so
no code branches on voucher-type strings to decide account requirements.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.

Invariants enforced
-------------------
* Cash accounts are ASSET accounts.
* A voucher's two accounts are distinct.
* ``voucher_type`` is an explicit identity; nothing here maps one type
  onto another.

Failure modes
-------------
* ``InvalidAccountShapeError`` from ``validate`` when an account is of the
  wrong ledger group, the two accounts coincide, or the variant does not
  belong to the voucher type.
* ``InvalidPartyError`` from ``check_party``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union
from uuid import UUID

from ledger_kernel.domain.ledger import EntrySide, LedgerGroup
from ledger_kernel.exceptions import InvalidAccountShapeError, InvalidPartyError


class VoucherType(str, Enum):
    PAYMENT = "PAYMENT"
    RECEIPT = "RECEIPT"
    DEPOSIT = "DEPOSIT"
    CONTRA = "CONTRA"
    JOURNAL = "JOURNAL"


class VoucherTo(str, Enum):
    CLIENT = "CLIENT"
    VENDOR = "VENDOR"
    STAFF = "STAFF"
    OTHER = "OTHER"


class VoucherStatus(str, Enum):
    """Voucher states.  Must align with ``workflows.VOUCHER_WORKFLOW.states``."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    POSTED = "POSTED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    """How money moved.  Shared by vouchers and invoice/bill payments."""
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHEQUE = "CHEQUE"
    CARD = "CARD"
    MOBILE_MONEY = "MOBILE_MONEY"
    OTHER = "OTHER"


def _require_group(
    voucher_type: VoucherType,
    role: str,
    account_id: UUID,
    groups: Mapping[UUID, LedgerGroup],
    allowed: tuple[LedgerGroup, ...],
) -> None:
    group = groups[account_id]
    if group not in allowed:
        raise InvalidAccountShapeError(
            voucher_type.value,
            f"{role} account must be {'/'.join(g.value for g in allowed)}, got {group.value}",
        )


def _require_distinct(voucher_type: VoucherType, first: UUID, second: UUID) -> None:
    if first == second:
        raise InvalidAccountShapeError(voucher_type.value, "the two accounts must differ")


_INCOME_GROUPS = tuple(g for g in LedgerGroup if g.is_income)


@dataclass(frozen=True)
class PaymentAccounts:
    """Cash paid out against an expense: debit expense, credit cash."""

    voucher_type: ClassVar[VoucherType] = VoucherType.PAYMENT
    cash_account_id: UUID
    expense_account_id: UUID

    def account_ids(self) -> tuple[UUID, UUID | None]:
        return self.cash_account_id, self.expense_account_id

    def validate(self, groups: Mapping[UUID, LedgerGroup]) -> None:
        _require_distinct(self.voucher_type, self.cash_account_id, self.expense_account_id)
        _require_group(self.voucher_type, "cash", self.cash_account_id, groups, (LedgerGroup.ASSET,))
        _require_group(self.voucher_type, "expense", self.expense_account_id, groups,
                       (LedgerGroup.EXPENSE,))

    def ledger_legs(self) -> dict:
        return {"debit_account_id": self.expense_account_id, "credit_account_id": self.cash_account_id}


@dataclass(frozen=True)
class ReceiptAccounts:
    """Cash received against income: debit cash, credit income."""

    voucher_type: ClassVar[VoucherType] = VoucherType.RECEIPT
    cash_account_id: UUID
    income_account_id: UUID

    def account_ids(self) -> tuple[UUID, UUID | None]:
        return self.cash_account_id, self.income_account_id

    def validate(self, groups: Mapping[UUID, LedgerGroup]) -> None:
        _require_distinct(self.voucher_type, self.cash_account_id, self.income_account_id)
        _require_group(self.voucher_type, "cash", self.cash_account_id, groups, (LedgerGroup.ASSET,))
        _require_group(self.voucher_type, "income", self.income_account_id, groups, _INCOME_GROUPS)

    def ledger_legs(self) -> dict:
        return {"debit_account_id": self.cash_account_id, "credit_account_id": self.income_account_id}


@dataclass(frozen=True)
class DepositAccounts:
    """Cash deposited with no counter-account: single-entry debit on cash."""

    voucher_type: ClassVar[VoucherType] = VoucherType.DEPOSIT
    cash_account_id: UUID

    def account_ids(self) -> tuple[UUID, UUID | None]:
        return self.cash_account_id, None

    def validate(self, groups: Mapping[UUID, LedgerGroup]) -> None:
        _require_group(self.voucher_type, "cash", self.cash_account_id, groups, (LedgerGroup.ASSET,))

    def ledger_legs(self) -> dict:
        return {"account_id": self.cash_account_id, "transaction_state": EntrySide.DEBIT}


@dataclass(frozen=True)
class ContraAccounts:
    """Transfer between two asset accounts: debit destination, credit source."""

    voucher_type: ClassVar[VoucherType] = VoucherType.CONTRA
    source_account_id: UUID
    destination_account_id: UUID

    def account_ids(self) -> tuple[UUID, UUID | None]:
        return self.source_account_id, self.destination_account_id

    def validate(self, groups: Mapping[UUID, LedgerGroup]) -> None:
        _require_distinct(self.voucher_type, self.source_account_id, self.destination_account_id)
        _require_group(self.voucher_type, "source", self.source_account_id, groups, (LedgerGroup.ASSET,))
        _require_group(self.voucher_type, "destination", self.destination_account_id, groups,
                       (LedgerGroup.ASSET,))

    def ledger_legs(self) -> dict:
        return {
            "debit_account_id": self.destination_account_id,
            "credit_account_id": self.source_account_id,
        }


@dataclass(frozen=True)
class JournalAccounts:
    """Any two distinct accounts, debit and credit as given."""

    voucher_type: ClassVar[VoucherType] = VoucherType.JOURNAL
    debit_account_id: UUID
    credit_account_id: UUID

    def account_ids(self) -> tuple[UUID, UUID | None]:
        return self.debit_account_id, self.credit_account_id

    def validate(self, groups: Mapping[UUID, LedgerGroup]) -> None:
        _require_distinct(self.voucher_type, self.debit_account_id, self.credit_account_id)

    def ledger_legs(self) -> dict:
        return {"debit_account_id": self.debit_account_id, "credit_account_id": self.credit_account_id}


VoucherAccounts = Union[
    PaymentAccounts, ReceiptAccounts, DepositAccounts, ContraAccounts, JournalAccounts
]

ACCOUNT_SHAPES: dict[VoucherType, type] = {
    shape.voucher_type: shape
    for shape in (PaymentAccounts, ReceiptAccounts, DepositAccounts, ContraAccounts, JournalAccounts)
}


def accounts_from_ids(voucher_type: VoucherType, primary_id: UUID, counter_id: UUID | None) -> VoucherAccounts:
    """Rebuild the variant from its stored (primary, counter) account ids."""
    shape = ACCOUNT_SHAPES[voucher_type]
    if shape is DepositAccounts:
        return DepositAccounts(primary_id)
    return shape(primary_id, counter_id)


def check_shape_matches(voucher_type: VoucherType, accounts: VoucherAccounts) -> None:
    if not isinstance(accounts, ACCOUNT_SHAPES[voucher_type]):
        raise InvalidAccountShapeError(
            voucher_type.value,
            f"{type(accounts).__name__} does not fit a {voucher_type.value} voucher",
        )


# Parties each voucher type may be addressed to.  Types absent here accept any.
ALLOWED_PARTIES: dict[VoucherType, frozenset[VoucherTo]] = {
    VoucherType.PAYMENT: frozenset({VoucherTo.VENDOR, VoucherTo.STAFF, VoucherTo.OTHER}),
    VoucherType.RECEIPT: frozenset({VoucherTo.CLIENT, VoucherTo.OTHER}),
}

_PARTY_FIELD = {
    VoucherTo.CLIENT: "client_id",
    VoucherTo.VENDOR: "vendor_id",
    VoucherTo.STAFF: "staff_id",
}


@dataclass(frozen=True)
class VoucherParty:
    """Who the voucher is addressed to.  At most one id is populated."""

    voucher_to: VoucherTo
    client_id: UUID | None = None
    vendor_id: UUID | None = None
    staff_id: UUID | None = None
    beneficiary_name: str | None = None

    def populated_fields(self) -> list[str]:
        return [name for name in ("client_id", "vendor_id", "staff_id") if getattr(self, name) is not None]


def check_party(voucher_type: VoucherType, party: VoucherParty) -> None:
    """
    Raises:
        InvalidPartyError: ``voucher_to`` not allowed for ``voucher_type``,
            or the populated party id does not match ``voucher_to``.
    """
    allowed = ALLOWED_PARTIES.get(voucher_type)
    if allowed is not None and party.voucher_to not in allowed:
        raise InvalidPartyError(
            voucher_type.value, party.voucher_to.value,
            f"allowed: {', '.join(sorted(t.value for t in allowed))}",
        )

    populated = party.populated_fields()
    if len(populated) > 1:
        raise InvalidPartyError(voucher_type.value, party.voucher_to.value,
                                f"only one party id may be set, got {populated}")
    expected = _PARTY_FIELD.get(party.voucher_to)
    if expected is None:
        if populated:
            raise InvalidPartyError(voucher_type.value, party.voucher_to.value,
                                    f"{populated[0]} set for a voucher to OTHER")
    elif populated != [expected]:
        raise InvalidPartyError(voucher_type.value, party.voucher_to.value, f"{expected} is required")


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a state-changing call.

    ``no_op`` is True when the entity was already in the requested
    terminal state and nothing was re-applied.
    """

    entity_id: UUID
    status: str
    no_op: bool = False
    message: str | None = None
