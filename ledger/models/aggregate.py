"""Aggregation and dashboard models."""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from ledger.models.invoice import TaxType
from ledger.models.reconciled import ReconciliationFailure
from ledger.money import MoneyValue, QuantityValue, ZERO


class Dimension(str, Enum):
    """Grouping key for a rollup."""

    CUSTOMER = "customer"
    REGION_ZONE = "region_zone"
    BUSINESS_UNIT = "business_unit"
    TAX_TYPE = "tax_type"
    MONTH = "month"


class AggregateMetric(str, Enum):
    """Per-invoice figure a rollup is ranked by."""

    INVOICE_VALUE = "invoice_value"
    TOTAL_BALANCE = "total_balance"
    OVER_DUE = "over_due"
    NOT_DUE = "not_due"
    NET_COLLECTIBLE = "net_collectible"
    TOTAL_TAX = "total_tax"


class DimensionSpec(BaseModel):
    """What to group by, what to rank by, and how many rows to keep."""

    dimension: Dimension
    metric: AggregateMetric = AggregateMetric.INVOICE_VALUE
    limit: int | None = Field(None, ge=1)

    model_config = {"frozen": True}


class AggregateRow(BaseModel):
    """One group of a dimension rollup."""

    dimension: Dimension
    key: str
    labels: dict[str, str]
    amount: MoneyValue
    count: int = Field(..., ge=0)
    invoice_value: MoneyValue = ZERO
    total_tax: MoneyValue = ZERO
    total_balance: MoneyValue = ZERO
    not_due_total: MoneyValue = ZERO
    over_due_total: MoneyValue = ZERO
    total_deductions: MoneyValue = ZERO
    net_collectible: MoneyValue = ZERO

    model_config = {"frozen": True}


class AggregationResult(BaseModel):
    """Rows of a rollup plus how many invoices were left out."""

    dimension: Dimension
    metric: AggregateMetric
    rows: tuple[AggregateRow, ...] = ()
    excluded_count: int = Field(0, ge=0)
    as_of_date: date | None = None

    model_config = {"frozen": True}


class InvoiceFilter(BaseModel):
    """Dashboard filters. Unset fields do not filter."""

    date_from: date | None = None
    date_to: date | None = None
    customer: str | None = None
    business_unit: str | None = None
    region: str | None = None
    zone: str | None = None
    invoice_type: str | None = None
    amount_min: MoneyValue | None = None
    amount_max: MoneyValue | None = None
    tax_types: tuple[TaxType, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_ranges(self) -> "InvoiceFilter":
        """Lower bounds must not exceed upper bounds."""
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must be on or before date_to")
        if (
            self.amount_min is not None
            and self.amount_max is not None
            and self.amount_min > self.amount_max
        ):
            raise ValueError("amount_min must not exceed amount_max")
        return self


class DashboardSummary(BaseModel):
    """Headline totals over the filtered invoices."""

    total_invoice_amount: MoneyValue = ZERO
    total_tax: MoneyValue = ZERO
    total_deductions: MoneyValue = ZERO
    total_penalty_ld: MoneyValue = ZERO
    freight: MoneyValue = ZERO
    bad_debts: MoneyValue = ZERO
    total_balance: MoneyValue = ZERO
    not_due_total: MoneyValue = ZERO
    over_due_total: MoneyValue = ZERO
    net_collectible: MoneyValue = ZERO
    invoice_count: int = 0
    excluded_count: int = 0
    dso: int = 0  # days sales outstanding


class AgingBucket(BaseModel):
    """Open installment balances within a days-past-due range."""

    label: str
    min_days: int = Field(..., ge=0)
    max_days: int | None = None  # None is open-ended
    amount: MoneyValue = ZERO
    count: int = Field(0, ge=0)


class HoldException(BaseModel):
    """An invoice with a payment hold."""

    invoice_number: str
    reason: str
    hold_amount: MoneyValue
    invoice_value: MoneyValue


class ReconciliationInsights(BaseModel):
    """Exception figures for the reconciliation panel."""

    excess_qty: QuantityValue = Decimal("0.000")
    lc_discrepancy: MoneyValue = ZERO
    bank_charges: MoneyValue = ZERO
    interest: MoneyValue = ZERO
    holds: tuple[HoldException, ...] = ()


class AvailableOptions(BaseModel):
    """Distinct filter values, sorted."""

    customers: tuple[str, ...] = ()
    business_units: tuple[str, ...] = ()
    regions: tuple[str, ...] = ()
    zones: tuple[str, ...] = ()
    invoice_types: tuple[str, ...] = ()


class Dashboard(BaseModel):
    """Everything the sales-invoice dashboard renders."""

    as_of_date: date
    has_data: bool
    summary: DashboardSummary
    region_wise: tuple[AggregateRow, ...] = ()
    business_unit_wise: tuple[AggregateRow, ...] = ()
    customer_wise: tuple[AggregateRow, ...] = ()
    top_overdue_customers: tuple[AggregateRow, ...] = ()
    tax_type_wise: tuple[AggregateRow, ...] = ()
    tax_breakup: dict[TaxType, MoneyValue] = Field(default_factory=dict)
    monthly_trend: tuple[AggregateRow, ...] = ()
    aging_buckets: tuple[AgingBucket, ...] = ()
    reconciliation: ReconciliationInsights = ReconciliationInsights()
    available_options: AvailableOptions = AvailableOptions()
    failures: tuple[ReconciliationFailure, ...] = ()
