"""Write-side services of the ledger kernel. Flush only; never commit."""
