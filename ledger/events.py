"""
Domain events for the receivables ledger.

Immutable records of what a reconciliation run produced. Collaborators
(alerting, exports, dashboards) subscribe to them on the event bus. The
reconciler itself never publishes: only the dashboard service, which owns
the batch run, does.

Events carry the full result objects so handlers don't need to recompute.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class LedgerEvent:
    """Base class for all ledger events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


@dataclass(frozen=True)
class InvoiceReconciled(LedgerEvent):
    """An invoice reconciled successfully."""
    invoice: Any = None  # ReconciledInvoice

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceReconciled":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class ReconciliationFailed(LedgerEvent):
    """An invoice in a batch could not be reconciled."""
    failure: Any = None  # ReconciliationFailure

    @classmethod
    def create(cls, failure: Any) -> "ReconciliationFailed":
        return cls(failure=failure)


@dataclass(frozen=True)
class BatchReconciled(LedgerEvent):
    """A whole batch finished reconciling."""
    as_of_date: date | None = None
    reconciled_count: int = 0
    failed_count: int = 0

    @classmethod
    def create(cls, as_of_date: date, reconciled_count: int, failed_count: int) -> "BatchReconciled":
        return cls(
            as_of_date=as_of_date,
            reconciled_count=reconciled_count,
            failed_count=failed_count,
        )
