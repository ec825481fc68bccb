"""
Module ORM Registry (``ledger_modules._orm_registry``).

Ensures every SQLAlchemy model is imported so ``Base.metadata`` holds the
complete schema before ``ledger_kernel.db.engine.create_tables()`` runs,
and collects the append-only listeners the modules hand to the kernel.

Usage::

    import_all_orm_models()
    create_tables(engine)
    register_immutability_listeners(extra_listeners=module_immutability_listeners())
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``ledger_modules.*.orm`` module (idempotent)."""
    # Kernel tables first; module tables reference them.
    import ledger_kernel.models  # noqa: F401
    import ledger_kernel.services.sequence_service  # noqa: F401
    import ledger_modules.billing.orm  # noqa: F401
    import ledger_modules.vouchers.orm  # noqa: F401


def module_immutability_listeners() -> list[tuple]:
    """``(mapped_class, event_name, fn)`` triples for module-owned append-only rows."""
    from ledger_modules.billing.immutability import payment_immutability_listeners

    return payment_immutability_listeners()
