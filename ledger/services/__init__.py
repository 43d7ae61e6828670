"""Reconciliation and reporting services."""
