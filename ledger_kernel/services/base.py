"""
BaseService -- common constructor for state-changing services.

Responsibility:
    Gives every service the caller's ``Session``, an injected ``Clock`` and
    an optional ``DomainEventBus``.  Services persist with
    ``session.flush()`` and never ``commit()``/``rollback()``: the caller
    owns the transaction so multi-step operations stay atomic.

Architecture position:
    Kernel > Services.  Module services (vouchers, billing) extend it too.
"""

from abc import ABC
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.events import DomainEvent
from ledger_kernel.services.event_bus import DomainEventBus

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for ledger services.

    Contract:
        Uses ``session.flush()`` inside the caller's transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle.
        - Does NOT provide read models; those live in ``selectors/``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        event_bus: DomainEventBus | None = None,
    ):
        self.session = session
        self._clock = clock or SystemClock()
        self._event_bus = event_bus

    def _emit(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: UUID,
        **payload: Any,
    ) -> None:
        """Queue a domain event for delivery after the caller commits."""
        if self._event_bus is None:
            return
        self._event_bus.collect(
            self.session,
            DomainEvent(
                event_type=event_type,
                aggregate_type=aggregate_type,
                aggregate_id=aggregate_id,
                occurred_at=self._clock.now(),
                payload=payload,
            ),
        )
