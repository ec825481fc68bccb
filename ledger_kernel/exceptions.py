"""
Typed exception hierarchy for the ledger engine.

Every error is a typed class carrying a machine-readable ``code`` class
attribute and structured attributes, so callers catch by type and surface
``code`` plus the entity's authoritative state instead of parsing messages.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- ValidationError            caller-correctable, raised before mutation
    |   +-- UnbalancedEntryError
    |   +-- PostingValidationError
    |   +-- InvalidAccountShapeError
    |   +-- InvalidPartyError
    |   +-- DuplicateAccountCodeError
    |   +-- CyclicHierarchyError
    |   +-- InvalidLineItemError
    |   +-- VoucherTypeDisabledError
    |
    +-- StateError                 caller holds stale state
    |   +-- AlreadyPostedError
    |   +-- NotPostedError
    |   +-- AccountInUseError
    |   +-- InvalidStateTransitionError
    |   +-- OverpaymentNotAllowedError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- TransactionNotFoundError
    |   +-- GroupNotFoundError
    |   +-- VoucherNotFoundError
    |   +-- DocumentNotFoundError
    |   +-- PaymentNotFoundError
    |
    +-- LedgerIntegrityError       invariant broken after the fact; fatal
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- CurrencyError
        +-- InvalidCurrencyError
        +-- CurrencyMismatchError

===============================================================================
ERROR CODES
===============================================================================

Category     | Code                      | When Raised
-------------|---------------------------|--------------------------------------
Validation   | UNBALANCED_ENTRY          | sum(debits) != sum(credits)
             | POSTING_VALIDATION_FAILED | validate() returned violations
             | INVALID_ACCOUNT_SHAPE     | voucher accounts don't fit the type
             | INVALID_PARTY             | voucher_to/party mismatch
             | DUPLICATE_CODE            | account code already registered
             | CYCLIC_HIERARCHY          | parent assignment creates a cycle
             | INVALID_LINE_ITEM         | bad quantity/price/rate on a line
             | VOUCHER_TYPE_DISABLED     | CONTRA/JOURNAL used while disabled
-------------|---------------------------|--------------------------------------
State        | ALREADY_POSTED            | post() on a POSTED transaction
             | NOT_POSTED                | reverse() on a non-POSTED record
             | ACCOUNT_IN_USE            | deactivate() with PENDING references
             | INVALID_STATE_TRANSITION  | action not allowed from current status
             | OVERPAYMENT_NOT_ALLOWED   | reject-overpayment policy tripped
-------------|---------------------------|--------------------------------------
Integrity    | LEDGER_INTEGRITY_VIOLATION| posted data found inconsistent
Immutability | IMMUTABILITY_VIOLATION    | edit/delete of posted history
Currency     | INVALID_CURRENCY          | unknown ISO 4217 code
             | CURRENCY_MISMATCH         | mixed currencies in one operation
"""

from decimal import Decimal


class LedgerKernelError(Exception):
    """Base exception for all ledger engine errors."""

    code: str = "LEDGER_KERNEL_ERROR"


# ---------------------------------------------------------------------------
# Validation errors
# ---------------------------------------------------------------------------


class ValidationError(LedgerKernelError):
    """Base for caller-correctable input errors."""

    code: str = "VALIDATION_ERROR"


class UnbalancedEntryError(ValidationError):
    """Debit legs do not equal credit legs."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: Decimal, credits: Decimal, group_id: str | None = None):
        self.debits = debits
        self.credits = credits
        self.group_id = group_id
        super().__init__(f"Unbalanced entry: debits={debits}, credits={credits}")


class PostingValidationError(ValidationError):
    """A transaction failed pre-posting validation."""

    code: str = "POSTING_VALIDATION_FAILED"

    def __init__(self, transaction_id: str, violations: list[str]):
        self.transaction_id = transaction_id
        self.violations = list(violations)
        super().__init__(
            f"Transaction {transaction_id} failed validation: {', '.join(violations)}"
        )


class InvalidAccountShapeError(ValidationError):
    """Voucher accounts do not match what the voucher type requires."""

    code: str = "INVALID_ACCOUNT_SHAPE"

    def __init__(self, voucher_type: str, reason: str):
        self.voucher_type = voucher_type
        self.reason = reason
        super().__init__(f"Invalid accounts for {voucher_type} voucher: {reason}")


class InvalidPartyError(ValidationError):
    """voucher_to or the party reference is incompatible with the voucher type."""

    code: str = "INVALID_PARTY"

    def __init__(self, voucher_type: str, voucher_to: str, reason: str):
        self.voucher_type = voucher_type
        self.voucher_to = voucher_to
        self.reason = reason
        super().__init__(
            f"Invalid party for {voucher_type} voucher to {voucher_to}: {reason}"
        )


class DuplicateAccountCodeError(ValidationError):
    """Account code already exists."""

    code: str = "DUPLICATE_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account code already exists: {account_code}")


class CyclicHierarchyError(ValidationError):
    """Parent assignment would make an account its own ancestor."""

    code: str = "CYCLIC_HIERARCHY"

    def __init__(self, account_id: str, parent_id: str):
        self.account_id = account_id
        self.parent_id = parent_id
        super().__init__(
            f"Assigning parent {parent_id} to account {account_id} creates a cycle"
        )


class InvalidLineItemError(ValidationError):
    """Document line item has an invalid quantity, price or rate."""

    code: str = "INVALID_LINE_ITEM"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid line item {field}={value!r}: {reason}")


class VoucherTypeDisabledError(ValidationError):
    """Voucher type is not enabled in configuration."""

    code: str = "VOUCHER_TYPE_DISABLED"

    def __init__(self, voucher_type: str):
        self.voucher_type = voucher_type
        super().__init__(f"Voucher type {voucher_type} is not enabled")


# ---------------------------------------------------------------------------
# State errors
# ---------------------------------------------------------------------------


class StateError(LedgerKernelError):
    """Base for operations attempted against an incompatible status."""

    code: str = "STATE_ERROR"


class AlreadyPostedError(StateError):
    """Transaction or group has already been posted."""

    code: str = "ALREADY_POSTED"

    def __init__(self, entity_type: str, entity_id: str, current_status: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        super().__init__(f"{entity_type} {entity_id} is already {current_status}")


class NotPostedError(StateError):
    """Reversal requested for a record that is not POSTED."""

    code: str = "NOT_POSTED"

    def __init__(self, entity_type: str, entity_id: str, current_status: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        super().__init__(
            f"{entity_type} {entity_id} cannot be reversed from status {current_status}"
        )


class AccountInUseError(StateError):
    """Account has PENDING transactions referencing it."""

    code: str = "ACCOUNT_IN_USE"

    def __init__(self, account_id: str, pending_count: int):
        self.account_id = account_id
        self.pending_count = pending_count
        super().__init__(
            f"Account {account_id} is referenced by {pending_count} pending transaction(s)"
        )


class InvalidStateTransitionError(StateError):
    """Lifecycle action is not allowed from the entity's current status."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, entity_type: str, entity_id: str, current_status: str, action: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in status {current_status}"
        )


class OverpaymentNotAllowedError(StateError):
    """Payment would push amount_paid past total_amount under a reject policy."""

    code: str = "OVERPAYMENT_NOT_ALLOWED"

    def __init__(self, document_id: str, amount_due: Decimal, payment_amount: Decimal):
        self.document_id = document_id
        self.amount_due = amount_due
        self.payment_amount = payment_amount
        super().__init__(
            f"Payment {payment_amount} exceeds amount due {amount_due} on {document_id}"
        )


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class NotFoundError(LedgerKernelError):
    """Base for lookups of unknown identities."""

    code: str = "NOT_FOUND"
    entity_type: str = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class AccountNotFoundError(NotFoundError):
    code: str = "ACCOUNT_NOT_FOUND"
    entity_type = "LedgerAccount"


class TransactionNotFoundError(NotFoundError):
    code: str = "TRANSACTION_NOT_FOUND"
    entity_type = "LedgerTransaction"


class GroupNotFoundError(NotFoundError):
    code: str = "GROUP_NOT_FOUND"
    entity_type = "LedgerTransactionGroup"


class VoucherNotFoundError(NotFoundError):
    code: str = "VOUCHER_NOT_FOUND"
    entity_type = "Voucher"


class DocumentNotFoundError(NotFoundError):
    code: str = "DOCUMENT_NOT_FOUND"
    entity_type = "BillingDocument"


class PaymentNotFoundError(NotFoundError):
    code: str = "PAYMENT_NOT_FOUND"
    entity_type = "Payment"


# ---------------------------------------------------------------------------
# Integrity
# ---------------------------------------------------------------------------


class LedgerIntegrityError(LedgerKernelError):
    """Posted ledger data violates an invariant that write-time checks guard."""

    code: str = "LEDGER_INTEGRITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Integrity violation on {entity_type} {entity_id}: {reason}")


# ---------------------------------------------------------------------------
# Immutability
# ---------------------------------------------------------------------------


class ImmutabilityError(LedgerKernelError):
    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted edit or delete of immutable ledger history."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")


# ---------------------------------------------------------------------------
# Currency
# ---------------------------------------------------------------------------


class CurrencyError(LedgerKernelError):
    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError):
    """Currency code is not a known ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: {currency!r}")


class CurrencyMismatchError(CurrencyError):
    """Amounts in different currencies were combined."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Currency mismatch: expected {expected}, got {actual}")
