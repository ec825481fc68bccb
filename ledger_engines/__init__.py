"""
ledger_engines -- pure calculation layer.

Engines take plain values and return frozen results.  They never open a
session, read the clock or mutate ledger state; callers in ledger_modules
load the inputs and persist the outputs.

    aging             -- receivable/payable aging buckets
    document_status   -- invoice/bill status derivation
    document_totals   -- subtotal, discount, tax and total from line items
    tracer            -- @traced_engine, emits LEDGER_ENGINE_TRACE
"""
