"""
DomainEventBus -- post-commit delivery of domain events.

Responsibility:
    Services ``collect`` events while they work; the bus holds them per
    session and hands them to subscribers only after the session's outer
    transaction commits.  If the transaction ends any other way the events
    are dropped, so subscribers never hear about changes that did not happen.

Failure modes:
    A subscriber that raises is logged as ``domain_event_delivery_failed``
    and skipped.  The ledger change has already committed and stays.
"""

from collections import defaultdict
from collections.abc import Callable
from weakref import WeakKeyDictionary

from sqlalchemy import event
from sqlalchemy.orm import Session, SessionTransaction

from ledger_kernel.domain.events import DomainEvent
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.event_bus")

EventHandler = Callable[[DomainEvent], None]

ALL_EVENTS = "*"


class DomainEventBus:
    """
    In-process publish/subscribe for domain events.

    Guarantees:
        - Delivery happens after commit, in collection order.
        - One failing subscriber does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._pending: WeakKeyDictionary[Session, list[DomainEvent]] = WeakKeyDictionary()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Register ``handler`` for ``event_type`` (``"*"`` for every event)."""
        self._handlers[event_type].append(handler)

    def collect(self, session: Session, domain_event: DomainEvent) -> None:
        if session not in self._pending:
            self._pending[session] = []
            if not event.contains(session, "after_commit", self._after_commit):
                event.listen(session, "after_commit", self._after_commit)
                event.listen(session, "after_transaction_end", self._after_transaction_end)
        self._pending[session].append(domain_event)
        logger.debug(
            "domain_event_collected",
            extra={
                "event_type": domain_event.event_type,
                "aggregate_id": domain_event.aggregate_id,
            },
        )

    def pending(self, session: Session) -> list[DomainEvent]:
        """Events collected on ``session`` and not yet delivered."""
        return list(self._pending.get(session, []))

    def _after_commit(self, session: Session) -> None:
        if session.in_nested_transaction():
            return
        for domain_event in self._pending.pop(session, []):
            self.deliver(domain_event)

    def _after_transaction_end(self, session: Session, transaction: SessionTransaction) -> None:
        if transaction.parent is None:
            discarded = self._pending.pop(session, [])
            if discarded:
                logger.info("domain_events_discarded", extra={"count": len(discarded)})

    def deliver(self, domain_event: DomainEvent) -> None:
        handlers = self._handlers.get(domain_event.event_type, []) + self._handlers.get(ALL_EVENTS, [])
        for handler in handlers:
            try:
                handler(domain_event)
            except Exception:
                logger.exception(
                    "domain_event_delivery_failed",
                    extra={
                        "event_type": domain_event.event_type,
                        "aggregate_type": domain_event.aggregate_type,
                        "aggregate_id": domain_event.aggregate_id,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                    },
                )
        logger.debug(
            "domain_event_delivered",
            extra={"event_type": domain_event.event_type, "handlers": len(handlers)},
        )
