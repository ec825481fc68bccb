"""
Billing Domain Models (``ledger_modules.billing.models``).

Responsibility
--------------
Inputs and snapshots for the Billing Document Engine: line item input
validation and the status enums shared with the status derivation engine.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.

Invariants enforced
-------------------
* Quantities, prices and rates are ``Decimal`` (never ``float``).
* quantity > 0, unit_price >= 0, 0 <= tax_rate <= 100,
  0 <= discount_percent <= 100.

Failure modes
-------------
* ``InvalidLineItemError`` raised in ``__post_init__``.
"""

from dataclasses import dataclass
from decimal import Decimal

from ledger_engines.document_status import BillStatus, InvoiceStatus
from ledger_engines.document_totals import LineAmounts
from ledger_kernel.exceptions import InvalidLineItemError
from ledger_modules.vouchers.models import OperationResult, PaymentMethod

_HUNDRED = Decimal("100")


def _require_decimal(field: str, value: object) -> None:
    if not isinstance(value, Decimal):
        raise InvalidLineItemError(field, value, "must be a Decimal")
    if not value.is_finite():
        raise InvalidLineItemError(field, value, "must be finite")


@dataclass(frozen=True)
class LineItemInput:
    """A requested invoice or bill line.

    Contract: frozen, validated at construction.
    Non-goals: bills ignore ``discount_percent``; the service rejects a
    non-zero discount on a bill line.
    """

    description: str
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal = Decimal("0")
    discount_percent: Decimal = Decimal("0")

    def __post_init__(self):
        if not self.description or not self.description.strip():
            raise InvalidLineItemError("description", self.description, "cannot be empty")
        for name in ("quantity", "unit_price", "tax_rate", "discount_percent"):
            _require_decimal(name, getattr(self, name))
        if self.quantity <= 0:
            raise InvalidLineItemError("quantity", self.quantity, "must be positive")
        if self.unit_price < 0:
            raise InvalidLineItemError("unit_price", self.unit_price, "cannot be negative")
        if not 0 <= self.tax_rate <= _HUNDRED:
            raise InvalidLineItemError("tax_rate", self.tax_rate, "must be between 0 and 100")
        if not 0 <= self.discount_percent <= _HUNDRED:
            raise InvalidLineItemError(
                "discount_percent", self.discount_percent, "must be between 0 and 100"
            )

    def amounts(self) -> LineAmounts:
        return LineAmounts(
            quantity=self.quantity,
            unit_price=self.unit_price,
            tax_rate=self.tax_rate,
            discount_percent=self.discount_percent,
        )


__all__ = [
    "BillStatus",
    "InvoiceStatus",
    "LineItemInput",
    "OperationResult",
    "PaymentMethod",
]
