"""Read-only queries over ledger state."""
