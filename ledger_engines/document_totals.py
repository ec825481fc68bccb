"""
Document Totals Engine.

Pure functions with deterministic behavior. No I/O.

Subtotal, discount, tax and total of an invoice or bill are derived from
its line items and never stored independently of them:

    line total  = quantity * unit_price
    discount    = sum(line total * discount_percent / 100)          (invoice)
    tax         = sum((line total - line discount) * tax_rate / 100) (invoice)
    tax         = sum(line total * tax_rate / 100)                   (bill)
    total       = subtotal - discount + tax

Sums are accumulated exactly and each aggregate is rounded half-up to the
currency's minor units; ``total`` is computed from the rounded parts so the
printed figures always add up.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.values import Money

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class LineAmounts:
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal = Decimal("0")
    discount_percent: Decimal = Decimal("0")

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price

    @property
    def discount(self) -> Decimal:
        return self.line_total * self.discount_percent / _HUNDRED


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Money
    discount_amount: Money
    tax_amount: Money
    total_amount: Money


def _totals(subtotal: Decimal, discount: Decimal, tax: Decimal, currency: str) -> DocumentTotals:
    subtotal_m = Money(subtotal, currency).round()
    discount_m = Money(discount, currency).round()
    tax_m = Money(tax, currency).round()
    return DocumentTotals(
        subtotal=subtotal_m,
        discount_amount=discount_m,
        tax_amount=tax_m,
        total_amount=subtotal_m - discount_m + tax_m,
    )


@traced_engine("document_totals", "1.0", fingerprint_fields=("lines", "currency"))
def compute_invoice_totals(*, lines: Sequence[LineAmounts], currency: str) -> DocumentTotals:
    """Invoice totals; tax applies to the discounted line amount."""
    subtotal = sum((line.line_total for line in lines), Decimal("0"))
    discount = sum((line.discount for line in lines), Decimal("0"))
    tax = sum(
        ((line.line_total - line.discount) * line.tax_rate / _HUNDRED for line in lines),
        Decimal("0"),
    )
    return _totals(subtotal, discount, tax, currency)


@traced_engine("document_totals", "1.0", fingerprint_fields=("lines", "currency"))
def compute_bill_totals(*, lines: Sequence[LineAmounts], currency: str) -> DocumentTotals:
    """Bill totals; bills carry no discount."""
    subtotal = sum((line.line_total for line in lines), Decimal("0"))
    tax = sum((line.line_total * line.tax_rate / _HUNDRED for line in lines), Decimal("0"))
    return _totals(subtotal, Decimal("0"), tax, currency)
