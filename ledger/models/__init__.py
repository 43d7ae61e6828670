"""Ledger domain models."""

from ledger.models.invoice import (
    InvoiceHeader, LineValue, TaxLines, TaxType, InstallmentOverride,
    DeductionSet, DeductionCategory, DEDUCTION_CATEGORIES, InvoiceInput,
)
from ledger.models.installment import (
    Installment, InstallmentState, DueStatus, unused_installment, sum_balances,
)
from ledger.models.reconciled import (
    ReconciledInvoice, ReconciliationFailure, ReconciliationWarning, WarningCode,
    BatchResult, Outcome,
)
from ledger.models.aggregate import (
    Dimension, AggregateMetric, DimensionSpec, AggregateRow, AggregationResult,
    InvoiceFilter, DashboardSummary, AgingBucket, HoldException, ReconciliationInsights,
    AvailableOptions, Dashboard,
)

__all__ = [
    # Invoice input
    "InvoiceHeader", "LineValue", "TaxLines", "TaxType", "InstallmentOverride",
    "DeductionSet", "DeductionCategory", "DEDUCTION_CATEGORIES", "InvoiceInput",
    # Installment
    "Installment", "InstallmentState", "DueStatus", "unused_installment", "sum_balances",
    # Reconciliation
    "ReconciledInvoice", "ReconciliationFailure", "ReconciliationWarning", "WarningCode",
    "BatchResult", "Outcome",
    # Aggregation
    "Dimension", "AggregateMetric", "DimensionSpec", "AggregateRow", "AggregationResult",
    "InvoiceFilter", "DashboardSummary", "AgingBucket", "HoldException", "ReconciliationInsights",
    "AvailableOptions", "Dashboard",
]
