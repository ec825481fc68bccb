"""
Module: ledger_engines.aging
Responsibility:
    Classify outstanding invoices and bills into aging buckets by days past
    due and total them per bucket and per counterparty.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel.domain and ledger_kernel.logging_config.

Invariants enforced:
    - Only documents with amount_due > 0 appear in a report.
    - Every included document lands in exactly one bucket; bucket totals
      sum to the report total.
    - Decimal-only arithmetic via Money; one currency per report.

Failure modes:
    - ValueError when a bucket sequence leaves an age uncovered.
    - CurrencyMismatchError when documents of different currencies are
      aged together.

Audit relevance:
    Each report build is traced via ``@traced_engine``.

Usage:
    from ledger_engines.aging import AgingCalculator, AgingDocument

    report = AgingCalculator().build_aging_report(
        documents=[AgingDocument(doc_id, "BILL-000001", vendor_id,
                                 date(2026, 1, 15), Money.of("200", "USD"))],
        as_of_date=date(2026, 3, 1),
    )
    report.bucket_totals["60 Days"]    # Money(200, USD)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence
from uuid import UUID

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import CurrencyMismatchError
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.aging")


@dataclass(frozen=True)
class AgeBucket:
    """
    A contiguous range of days past due.

    ``min_days=None`` is unbounded below (not yet due); ``max_days=None`` is
    unbounded above.
    """

    name: str
    min_days: int | None
    max_days: int | None

    def __post_init__(self) -> None:
        if (
            self.min_days is not None
            and self.max_days is not None
            and self.max_days < self.min_days
        ):
            raise ValueError("max_days cannot be less than min_days")

    def contains(self, days_past_due: int) -> bool:
        if self.min_days is not None and days_past_due < self.min_days:
            return False
        return self.max_days is None or days_past_due <= self.max_days


CURRENT = "Current"
DAYS_30 = "30 Days"
DAYS_60 = "60 Days"
DAYS_90 = "90 Days"
OVER_90 = "90+ Days"

STANDARD_BUCKETS: tuple[AgeBucket, ...] = (
    AgeBucket(CURRENT, None, 0),
    AgeBucket(DAYS_30, 1, 30),
    AgeBucket(DAYS_60, 31, 60),
    AgeBucket(DAYS_90, 61, 90),
    AgeBucket(OVER_90, 91, None),
)


@dataclass(frozen=True)
class AgingDocument:
    """Outstanding balance of one invoice or bill, as read by the caller."""

    document_id: UUID | str
    document_number: str
    counterparty_id: UUID | str | None
    due_date: date
    amount_due: Money


@dataclass(frozen=True)
class AgedItem:
    document: AgingDocument
    days_past_due: int
    bucket: AgeBucket

    @property
    def is_overdue(self) -> bool:
        return self.days_past_due > 0


@dataclass(frozen=True)
class AgingEntityRow:
    """Per-counterparty bucket amounts."""

    counterparty_id: UUID | str | None
    by_bucket: dict[str, Money]
    total: Money

    @property
    def current(self) -> Money:
        return self.by_bucket[CURRENT]

    @property
    def days_30(self) -> Money:
        return self.by_bucket[DAYS_30]

    @property
    def days_60(self) -> Money:
        return self.by_bucket[DAYS_60]

    @property
    def days_90(self) -> Money:
        return self.by_bucket[DAYS_90]

    @property
    def over_90(self) -> Money:
        return self.by_bucket[OVER_90]


@dataclass(frozen=True)
class AgingReport:
    """
    Aging snapshot as of one date.

    Contract:
        Frozen result of AgingCalculator.build_aging_report.
    Guarantees:
        - ``sum(bucket_totals.values()) == total``.
        - ``total_overdue == total - bucket_totals[first bucket]``.
    """

    as_of_date: date
    currency: str
    buckets: tuple[AgeBucket, ...]
    items: tuple[AgedItem, ...]
    bucket_totals: dict[str, Money]
    rows: tuple[AgingEntityRow, ...]
    total: Money
    total_overdue: Money

    def items_in_bucket(self, bucket_name: str) -> tuple[AgedItem, ...]:
        return tuple(i for i in self.items if i.bucket.name == bucket_name)

    def row_for(self, counterparty_id: UUID | str | None) -> AgingEntityRow | None:
        for row in self.rows:
            if row.counterparty_id == counterparty_id:
                return row
        return None


class AgingCalculator:
    """
    Aging for receivables and payables.

    Contract:
        Pure functions; the as-of date is a parameter, never the clock.
    Guarantees:
        - ``classify`` maps every integer age to exactly one bucket of a
          well-formed bucket sequence.
    Non-goals:
        - Does not load documents or exclude cancelled ones; callers do.
    """

    DEFAULT_BUCKETS = STANDARD_BUCKETS

    def days_past_due(self, due_date: date, as_of_date: date) -> int:
        return (as_of_date - due_date).days

    def classify(
        self,
        days_past_due: int,
        buckets: Sequence[AgeBucket] | None = None,
    ) -> AgeBucket:
        """
        Raises:
            ValueError: the age fits no bucket.
        """
        for bucket in buckets or self.DEFAULT_BUCKETS:
            if bucket.contains(days_past_due):
                return bucket
        logger.warning("age_classification_no_bucket", extra={"days_past_due": days_past_due})
        raise ValueError(f"Age {days_past_due} does not fit any bucket")

    @traced_engine("aging", "1.0", fingerprint_fields=("documents", "as_of_date"))
    def build_aging_report(
        self,
        documents: Sequence[AgingDocument],
        as_of_date: date,
        currency: str | None = None,
        buckets: Sequence[AgeBucket] | None = None,
    ) -> AgingReport:
        """
        Bucket every document with a positive amount due.

        Args:
            documents: Outstanding balances; zero and negative ones are skipped.
            as_of_date: Reporting date.
            currency: Report currency.  Defaults to the first document's
                currency, or USD for an empty input.
            buckets: Bucket sequence, STANDARD_BUCKETS by default.
        """
        buckets = tuple(buckets or self.DEFAULT_BUCKETS)
        if currency is None:
            currency = documents[0].amount_due.currency if documents else "USD"
        zero = Money.zero(currency)

        items: list[AgedItem] = []
        for doc in documents:
            if doc.amount_due.currency != currency:
                raise CurrencyMismatchError(currency, doc.amount_due.currency)
            if not doc.amount_due.is_positive:
                continue
            days = self.days_past_due(doc.due_date, as_of_date)
            items.append(AgedItem(document=doc, days_past_due=days, bucket=self.classify(days, buckets)))

        bucket_totals = {b.name: zero for b in buckets}
        by_party: dict[UUID | str | None, dict[str, Money]] = {}
        for item in items:
            amount = item.document.amount_due
            bucket_totals[item.bucket.name] = bucket_totals[item.bucket.name] + amount
            party = by_party.setdefault(item.document.counterparty_id, {b.name: zero for b in buckets})
            party[item.bucket.name] = party[item.bucket.name] + amount

        rows = tuple(
            AgingEntityRow(
                counterparty_id=party_id,
                by_bucket=amounts,
                total=sum(amounts.values(), zero),
            )
            for party_id, amounts in by_party.items()
        )
        total = sum(bucket_totals.values(), zero)
        total_overdue = total - bucket_totals[buckets[0].name]

        logger.info(
            "aging_report_built",
            extra={
                "as_of_date": as_of_date.isoformat(),
                "document_count": len(documents),
                "item_count": len(items),
                "currency": currency,
                "total": str(total.amount),
            },
        )
        return AgingReport(
            as_of_date=as_of_date,
            currency=currency,
            buckets=buckets,
            items=tuple(items),
            bucket_totals=bucket_totals,
            rows=rows,
            total=total,
            total_overdue=total_overdue,
        )
