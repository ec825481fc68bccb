"""
SequenceService -- human-readable document numbers from locked counter rows.

Responsibility:
    Allocates strictly increasing numbers per named sequence and formats
    them as ``PREFIX-000042``.  Transactions (LT), journal entries (JE),
    vouchers (PV/RV/DV/CV/JV), invoices (INV) and bills (BILL) all draw
    from here.

Invariants enforced:
    - Monotonic: the counter row is read ``FOR UPDATE`` and incremented;
      aggregate max-plus-one is never used.
    - Transactional: a rolled-back allocation is returned with the rollback.

Failure modes:
    - IntegrityError on a concurrent first use is absorbed by a savepoint
      and the locked row is re-read.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """One row per named sequence holding its last allocated value."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """
    Transactional sequence allocation.

    Non-goals:
        - Does NOT commit; the value is consumed only if the caller commits.
    """

    TRANSACTION = "ledger_transaction"
    GROUP = "ledger_transaction_group"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """Allocate the next value (always > 0) for ``sequence_name``."""
        counter = self._locked_counter(sequence_name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=0)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
            except IntegrityError:
                logger.debug("sequence_counter_race_retry", extra={"sequence_name": sequence_name})
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def next_number(self, sequence_name: str, prefix: str, width: int = 6) -> str:
        """Allocate and format, e.g. ``next_number("invoice", "INV") -> "INV-000001"``."""
        return f"{prefix}-{self.next_value(sequence_name):0{width}d}"

    def current_value(self, sequence_name: str) -> int | None:
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None
