"""
ledger_kernel -- posting, balancing and lifecycle core of the ledger engine.

Layers (inner to outer):
    domain/     pure value objects, enums, lifecycles, clock
    db/         SQLAlchemy base, engine/session management, immutability listeners
    models/     ORM models for accounts, transactions and transaction groups
    services/   Account Registry, Posting Engine, Transaction Group Manager, event bus
    selectors/  read-only ledger queries (balances, trial balance, transaction listing)

Services flush but never commit; callers own the transaction boundary.
"""
