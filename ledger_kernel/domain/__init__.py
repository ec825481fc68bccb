"""Pure domain layer of the ledger kernel: values, enums, lifecycles, clock, events."""
