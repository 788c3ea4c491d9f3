"""Mess ledger: charges, payments and member balances for a dining mess."""

__version__ = "0.1.0"
