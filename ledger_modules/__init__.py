"""
ledger_modules -- document modules built on the ledger kernel.

    vouchers  -- Voucher Workflow: typed, party-aware wrappers around one
                 ledger transaction with an approval gate.
    billing   -- Billing Document Engine: invoices and bills, payment
                 application, status derivation and aging.

Modules route every balance change through the kernel PostingEngine and
never write ``LedgerAccount.balance`` themselves.
"""
