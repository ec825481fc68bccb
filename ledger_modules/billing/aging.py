"""
Receivables and payables aging (``ledger_modules.billing.aging``).

Loads open invoices or bills, adapts them to ``AgingDocument`` and hands
them to the pure ``AgingCalculator``.  Cancelled documents are excluded
here; the calculator itself skips anything with ``amount_due <= 0``.
Reports are single-currency: documents in other currencies are left out
of a report rather than converted.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import select

from ledger_engines.aging import AgingCalculator, AgingDocument, AgingReport
from ledger_engines.document_status import BillStatus, InvoiceStatus
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.domain.values import Money
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.base import BaseSelector
from ledger_modules.billing.orm import BillModel, InvoiceModel

logger = get_logger("modules.billing.aging")


class BillingAgingService(BaseSelector):
    """Read-only aging over persisted invoices and bills."""

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        base_currency: str = "USD",
        calculator: AgingCalculator | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._base_currency = CurrencyRegistry.validate(base_currency)
        self._calculator = calculator or AgingCalculator()

    def receivables_aging(self, as_of: date | None = None, currency: str | None = None) -> AgingReport:
        """Aging of amounts clients owe, by client."""
        return self._report(InvoiceModel, InvoiceStatus.CANCELLED, "receivables", as_of, currency)

    def payables_aging(self, as_of: date | None = None, currency: str | None = None) -> AgingReport:
        """Aging of amounts owed to vendors, by vendor."""
        return self._report(BillModel, BillStatus.CANCELLED, "payables", as_of, currency)

    def _report(self, model, cancelled_status, kind: str, as_of: date | None, currency: str | None):
        as_of = as_of or self._clock.today()
        currency = CurrencyRegistry.validate(currency or self._base_currency)
        rows = self.session.execute(
            select(model)
            .where(
                model.status != cancelled_status,
                model.cancelled_at.is_(None),
                model.currency == currency,
                model.amount_due > 0,
            )
            .order_by(model.due_date)
        ).scalars().all()

        documents = [
            AgingDocument(
                document_id=row.id,
                document_number=row.document_number,
                counterparty_id=row.counterparty_id,
                due_date=row.due_date,
                amount_due=Money(row.amount_due, currency),
            )
            for row in rows
        ]
        logger.debug(
            "aging_documents_loaded",
            extra={"kind": kind, "as_of": as_of.isoformat(), "currency": currency,
                   "document_count": len(documents)},
        )
        return self._calculator.build_aging_report(documents=documents, as_of_date=as_of,
                                                   currency=currency)
