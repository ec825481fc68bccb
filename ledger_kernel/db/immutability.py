"""
ORM-level append-only enforcement.

Responsibility:
    SQLAlchemy mapper listeners that refuse edits and deletes of ledger
    history:

    * LedgerTransaction / LedgerTransactionGroup -- once POSTED, the only
      permitted change is ``status`` moving POSTED -> REVERSED (plus audit
      metadata).  POSTED and REVERSED rows cannot be deleted; PENDING rows can.
    * LedgerAccount -- code, ledger_group and currency are frozen once a
      posted or reversed transaction references the account.

    Modules add their own append-only rows (billing payments) by passing
    ``extra_listeners`` built with ``append_only_update_guard``.

Architecture position:
    Kernel > DB.  Imports kernel models lazily inside the register
    function and never imports the modules layer.

Failure modes:
    ImmutabilityViolationError raised from inside flush; the session
    transaction must then be rolled back by the caller.

Audit relevance:
    Every blocked attempt is logged as ``immutability_violation_blocked``.

Usage:
    # once at startup, with the modules' own append-only rows
    register_immutability_listeners(extra_listeners=module_immutability_listeners())
"""

from sqlalchemy import event, inspect, or_, select
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.db.base import AUDIT_FIELDS
from ledger_kernel.domain.ledger import TransactionStatus
from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_POSTED_STATES = (TransactionStatus.POSTED, TransactionStatus.REVERSED)


def _as_status(value) -> TransactionStatus:
    return value if isinstance(value, TransactionStatus) else TransactionStatus(value)


def _blocked(entity_type: str, target, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
            "reason": reason,
        },
    )
    return ImmutabilityViolationError(entity_type, str(target.id), reason)


def _changed_fields(target, allowed: frozenset[str]) -> list[str]:
    insp = inspect(target)
    return [
        attr.key
        for attr in insp.mapper.column_attrs
        if attr.key not in allowed and insp.attrs[attr.key].history.has_changes()
    ]


def _check_posted_record_update(entity_type: str):
    """Build a before_update listener for a status-bearing ledger record."""

    def _listener(mapper, connection, target):
        history = get_history(target, "status")
        if history.deleted:
            previous = _as_status(history.deleted[0])
        else:
            previous = _as_status(target.status)

        if previous is TransactionStatus.PENDING:
            return

        if previous is TransactionStatus.REVERSED:
            changed = _changed_fields(target, AUDIT_FIELDS)
            if changed:
                raise _blocked(entity_type, target, "UPDATE",
                               "reversed records are permanent", changed[0])
            return

        # previous is POSTED: only POSTED -> REVERSED may happen
        if history.added and _as_status(history.added[0]) is not TransactionStatus.REVERSED:
            raise _blocked(entity_type, target, "UPDATE",
                           f"posted records can only become REVERSED, not {history.added[0]}",
                           "status")
        changed = _changed_fields(target, AUDIT_FIELDS | {"status"})
        if changed:
            raise _blocked(entity_type, target, "UPDATE",
                           "posted records are immutable except for status", changed[0])

    return _listener


def _check_posted_record_delete(entity_type: str):
    def _listener(mapper, connection, target):
        history = get_history(target, "status")
        status = _as_status(history.deleted[0] if history.deleted else target.status)
        if status in _POSTED_STATES:
            raise _blocked(entity_type, target, "DELETE",
                           f"{status.value} records cannot be deleted")

    return _listener


def _account_has_posted_references(connection, account_id) -> bool:
    from ledger_kernel.models.transaction import LedgerTransaction

    stmt = (
        select(LedgerTransaction.id)
        .where(
            LedgerTransaction.status.in_(_POSTED_STATES),
            or_(
                LedgerTransaction.debit_account_id == account_id,
                LedgerTransaction.credit_account_id == account_id,
                LedgerTransaction.account_id == account_id,
            ),
        )
        .limit(1)
    )
    return connection.execute(stmt).first() is not None


_ACCOUNT_STRUCTURAL_FIELDS = ("code", "ledger_group", "currency")


def _check_account_structural_immutability(mapper, connection, target):
    changed = [f for f in _ACCOUNT_STRUCTURAL_FIELDS if get_history(target, f).has_changes()]
    if changed and _account_has_posted_references(connection, target.id):
        raise _blocked("LedgerAccount", target, "UPDATE",
                       "account has posted history", changed[0])


def append_only_update_guard(entity_type: str, reason: str):
    """before_update listener refusing any change outside the audit fields."""

    def _listener(mapper, connection, target):
        changed = _changed_fields(target, AUDIT_FIELDS)
        if changed:
            raise _blocked(entity_type, target, "UPDATE", reason, changed[0])

    return _listener


_registered: list[tuple[type, str, object]] = []


def register_immutability_listeners(extra_listeners=()) -> None:
    """
    Register all append-only listeners (idempotent).

    ``extra_listeners`` holds ``(mapped_class, event_name, fn)`` triples
    from outer layers; they are registered and removed with the kernel ones.
    Call after models are importable and before any database work.
    """
    if _registered:
        return

    from ledger_kernel.models.account import LedgerAccount
    from ledger_kernel.models.transaction import LedgerTransaction, LedgerTransactionGroup

    listeners = [
        (LedgerTransaction, "before_update", _check_posted_record_update("LedgerTransaction")),
        (LedgerTransaction, "before_delete", _check_posted_record_delete("LedgerTransaction")),
        (LedgerTransactionGroup, "before_update",
         _check_posted_record_update("LedgerTransactionGroup")),
        (LedgerTransactionGroup, "before_delete",
         _check_posted_record_delete("LedgerTransactionGroup")),
        (LedgerAccount, "before_update", _check_account_structural_immutability),
        *extra_listeners,
    ]
    for target, name, fn in listeners:
        event.listen(target, name, fn)
        _registered.append((target, name, fn))
    logger.debug("immutability_listeners_registered", extra={"count": len(listeners)})


def unregister_immutability_listeners() -> None:
    """Remove the listeners. FOR TESTING ONLY."""
    while _registered:
        target, name, fn = _registered.pop()
        if event.contains(target, name, fn):
            event.remove(target, name, fn)
