"""HTTP API for the mess ledger."""
