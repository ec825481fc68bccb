"""Domain events emitted after a state change commits."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class DomainEvent:
    """
    Notification that an aggregate changed state.

    Contract:
        Delivered to subscribers only after the database transaction that
        produced it commits.  Subscribers drive notifications, email and PDF
        generation; their failures never undo the ledger change.
    """

    event_type: str
    aggregate_type: str
    aggregate_id: UUID
    occurred_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)
