"""Receivables ledger: invoice reconciliation and aggregation core."""
