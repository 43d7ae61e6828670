"""Reconciliation result models.

ReconciledInvoice is a derived view. It is recomputed from an InvoiceInput
and an as-of date on demand and never treated as authoritative storage.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from ledger.exceptions import ReconciliationErrorKind
from ledger.models.installment import Installment, sum_balances
from ledger.models.invoice import DeductionCategory, DeductionSet, InvoiceHeader, LineValue, TaxLines
from ledger.money import MoneyValue, RateValue, ZERO


class WarningCode(str, Enum):
    """Non-blocking findings attached to a reconciled invoice."""

    UNPARSEABLE_PAYMENT_TERMS = "unparseable_payment_terms"
    OVERPAYMENT = "overpayment"
    SCHEDULE_MISMATCH = "schedule_mismatch"


class ReconciliationWarning(BaseModel):
    """A finding the caller should surface without blocking."""

    code: WarningCode
    message: str
    stage: int | None = Field(None, ge=1, le=3)

    model_config = {"frozen": True}


class ReconciledInvoice(BaseModel):
    """Canonical per-invoice figures consumed by reporting."""

    header: InvoiceHeader
    line: LineValue
    tax_lines: TaxLines
    deductions: DeductionSet
    as_of_date: date

    total_tax: MoneyValue
    effective_tax_rate: RateValue
    tax_type: str
    basic_value: MoneyValue
    freight_value: MoneyValue
    sub_total: MoneyValue
    total_invoice_value: MoneyValue

    installments: tuple[Installment, Installment, Installment]
    total_balance: MoneyValue
    not_due_total: MoneyValue
    over_due_total: MoneyValue

    total_deductions: MoneyValue
    deductions_by_category: dict[DeductionCategory, MoneyValue]
    net_collectible: MoneyValue
    deductions_exceed_balance: bool = False

    warnings: tuple[ReconciliationWarning, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_rollups(self) -> "ReconciledInvoice":
        """Invoice totals must be the sums over the three stages."""
        if [i.stage for i in self.installments] != [1, 2, 3]:
            raise ValueError("Installments must be stages 1, 2, 3 in order")

        balance, not_due, over_due = sum_balances(self.installments)
        if self.total_balance != balance:
            raise ValueError(f"total_balance {self.total_balance} != sum of stages {balance}")
        if self.not_due_total != not_due:
            raise ValueError(f"not_due_total {self.not_due_total} != sum of stages {not_due}")
        if self.over_due_total != over_due:
            raise ValueError(f"over_due_total {self.over_due_total} != sum of stages {over_due}")

        expected_net = max(self.total_balance - self.total_deductions, ZERO)
        if self.net_collectible != expected_net:
            raise ValueError(f"net_collectible {self.net_collectible} != {expected_net}")
        return self

    @property
    def invoice_number(self) -> str:
        return self.header.invoice_number

    @property
    def overpayment_total(self) -> Decimal:
        """Sum of excess receipts across stages."""
        return sum((i.overpayment for i in self.installments), ZERO)

    def has_warning(self, code: WarningCode) -> bool:
        return any(w.code == code for w in self.warnings)


class ReconciliationFailure(BaseModel):
    """Typed failure for one invoice in a batch."""

    index: int = Field(..., ge=0)
    invoice_number: str | None = None
    kind: ReconciliationErrorKind
    message: str
    field: str | None = None
    stated: Decimal | None = None
    computed: Decimal | None = None

    model_config = {"frozen": True}


Outcome = ReconciledInvoice | ReconciliationFailure


class BatchResult(BaseModel):
    """Outcome of reconciling a batch, in input order."""

    as_of_date: date
    outcomes: tuple[Outcome, ...] = ()

    model_config = {"frozen": True}

    @property
    def reconciled(self) -> list[ReconciledInvoice]:
        return [o for o in self.outcomes if isinstance(o, ReconciledInvoice)]

    @property
    def failures(self) -> list[ReconciliationFailure]:
        return [o for o in self.outcomes if isinstance(o, ReconciliationFailure)]

    @property
    def excluded_count(self) -> int:
        """Invoices that failed and are left out of aggregates."""
        return len(self.failures)
