"""
Sales-invoice dashboard.

Reconciles a batch of stored invoice rows, applies the dashboard filters and
assembles every panel from the same reconciled figures: headline summary
with days sales outstanding, region/zone, business-unit, customer and
tax-type rollups, tax breakup, monthly trend, aging buckets and
reconciliation exceptions.

Failed invoices are left out of every figure and reported separately.
"""

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping

from ledger.config import LedgerConfig
from ledger.event_bus import EventBus
from ledger.events import BatchReconciled, InvoiceReconciled, ReconciliationFailed
from ledger.models import (
    AggregateMetric,
    AgingBucket,
    AggregateRow,
    AvailableOptions,
    BatchResult,
    Dashboard,
    DashboardSummary,
    Dimension,
    DimensionSpec,
    HoldException,
    InvoiceFilter,
    InvoiceInput,
    ReconciledInvoice,
    ReconciliationInsights,
    TaxType,
)
from ledger.money import ZERO, money_sum, to_quantity
from ledger.records import invoice_input_from_record
from ledger.services.aggregation import AggregationEngine
from ledger.services.reconciler import InvoiceReconciler

logger = logging.getLogger(__name__)

# (label, lowest and highest days past due); None is open-ended
AGING_BUCKETS: tuple[tuple[str, int, int | None], ...] = (
    ("0-30", 0, 30),
    ("31-60", 31, 60),
    ("61-90", 61, 90),
    ("90+", 91, None),
)


def _distinct(values: Iterable[str | None]) -> tuple[str, ...]:
    return tuple(sorted({value for value in values if value}))


class DashboardService:
    """Builds dashboard payloads from stored invoice rows."""

    def __init__(
        self,
        reconciler: InvoiceReconciler | None = None,
        engine: AggregationEngine | None = None,
        event_bus: EventBus | None = None,
        config: LedgerConfig | None = None,
    ):
        self.config = config or LedgerConfig()
        self.reconciler = reconciler or InvoiceReconciler(self.config)
        self.engine = engine or AggregationEngine(self.config)
        self.event_bus = event_bus

    def build(
        self,
        records: Iterable[InvoiceInput | Mapping[str, Any]],
        as_of_date: date | None = None,
        filters: InvoiceFilter | None = None,
    ) -> Dashboard:
        """
        Reconcile a batch and build the dashboard.

        Args:
            records: InvoiceInput objects or flat sales-invoice rows
            as_of_date: Classification date (defaults to today in the business timezone)
            filters: Optional dashboard filters

        Returns:
            Dashboard
        """
        batch = self.reconciler.reconcile_batch(
            records, as_of_date, loader=invoice_input_from_record
        )
        self._publish(batch)
        return self.build_from_batch(batch, filters)

    def _publish(self, batch: BatchResult) -> None:
        if self.event_bus is None:
            return
        for invoice in batch.reconciled:
            self.event_bus.publish(InvoiceReconciled.create(invoice=invoice))
        for failure in batch.failures:
            self.event_bus.publish(ReconciliationFailed.create(failure=failure))
        self.event_bus.publish(BatchReconciled.create(
            as_of_date=batch.as_of_date,
            reconciled_count=len(batch.reconciled),
            failed_count=batch.excluded_count,
        ))

    def build_from_batch(self, batch: BatchResult, filters: InvoiceFilter | None = None) -> Dashboard:
        """Dashboard over an already reconciled batch."""
        invoices = batch.reconciled
        options = self.available_options(invoices)
        selected = self.engine.select(invoices, filters) if filters else invoices

        if not selected:
            return Dashboard(
                as_of_date=batch.as_of_date,
                has_data=False,
                summary=DashboardSummary(excluded_count=batch.excluded_count),
                tax_breakup=self.tax_breakup([]),
                aging_buckets=self.aging([]),
                available_options=options,
                failures=tuple(batch.failures),
            )

        def rollup(dimension: Dimension, metric: AggregateMetric = AggregateMetric.INVOICE_VALUE,
                   limit: int | None = None) -> tuple[AggregateRow, ...]:
            spec = DimensionSpec(dimension=dimension, metric=metric, limit=limit)
            return self.engine.aggregate(selected, spec, batch.as_of_date).rows

        top_n = self.config.top_n
        dashboard = Dashboard(
            as_of_date=batch.as_of_date,
            has_data=True,
            summary=self.summarize(selected, batch.excluded_count),
            region_wise=rollup(Dimension.REGION_ZONE),
            business_unit_wise=rollup(Dimension.BUSINESS_UNIT),
            customer_wise=rollup(Dimension.CUSTOMER, limit=top_n),
            top_overdue_customers=rollup(Dimension.CUSTOMER, AggregateMetric.OVER_DUE, top_n),
            tax_type_wise=rollup(Dimension.TAX_TYPE),
            tax_breakup=self.tax_breakup(selected),
            monthly_trend=self.monthly_trend(rollup(Dimension.MONTH)),
            aging_buckets=self.aging(selected),
            reconciliation=self.insights(selected),
            available_options=options,
            failures=tuple(batch.failures),
        )

        logger.info(
            "Dashboard as of %s: %d invoices, %d excluded, net collectible %s",
            batch.as_of_date,
            dashboard.summary.invoice_count,
            dashboard.summary.excluded_count,
            dashboard.summary.net_collectible,
        )
        return dashboard

    def summarize(self, invoices: list[ReconciledInvoice], excluded_count: int = 0) -> DashboardSummary:
        """Headline totals."""
        return DashboardSummary(
            total_invoice_amount=money_sum(i.total_invoice_value for i in invoices),
            total_tax=money_sum(i.total_tax for i in invoices),
            total_deductions=money_sum(i.total_deductions for i in invoices),
            total_penalty_ld=money_sum(i.deductions.penalty_ld_deduction for i in invoices),
            freight=money_sum(i.freight_value for i in invoices),
            bad_debts=money_sum(i.deductions.bad_debts for i in invoices),
            total_balance=money_sum(i.total_balance for i in invoices),
            not_due_total=money_sum(i.not_due_total for i in invoices),
            over_due_total=money_sum(i.over_due_total for i in invoices),
            net_collectible=money_sum(i.net_collectible for i in invoices),
            invoice_count=len(invoices),
            excluded_count=excluded_count,
            dso=self.days_sales_outstanding(invoices),
        )

    def days_sales_outstanding(self, invoices: list[ReconciledInvoice]) -> int:
        """
        Days sales outstanding.

        Outstanding balance divided by average daily sales, where daily
        sales spread the invoiced total over the span of issue dates (at
        least one day). Rounded half-up to whole days; 0 when nothing is
        outstanding.
        """
        outstanding = money_sum(i.total_balance for i in invoices)
        if not invoices or outstanding == 0:
            return 0

        issue_dates = [i.header.issue_date for i in invoices]
        span_days = max((max(issue_dates) - min(issue_dates)).days, 1)
        daily_sales = money_sum(i.total_invoice_value for i in invoices) / span_days
        dso = outstanding / max(daily_sales, Decimal(1))
        return int(dso.to_integral_value(rounding=ROUND_HALF_UP))

    def aging(self, invoices: list[ReconciledInvoice]) -> tuple[AgingBucket, ...]:
        """
        Open installment balances by days past due.

        Each stage is aged from its own due date to the invoice's as-of
        date. Balances not yet due count as 0 days and land in the first
        bucket.
        """
        amounts = [ZERO for _ in AGING_BUCKETS]
        counts = [0 for _ in AGING_BUCKETS]

        for invoice in invoices:
            for installment in invoice.installments:
                if installment.balance <= 0:
                    continue
                days = installment.days_past_due(invoice.as_of_date)
                for index, (_, _, max_days) in enumerate(AGING_BUCKETS):
                    if max_days is None or days <= max_days:
                        amounts[index] += installment.balance
                        counts[index] += 1
                        break

        return tuple(
            AgingBucket(label=label, min_days=min_days, max_days=max_days, amount=amount, count=count)
            for (label, min_days, max_days), amount, count in zip(AGING_BUCKETS, amounts, counts)
        )

    def tax_breakup(self, invoices: list[ReconciledInvoice]) -> dict[TaxType, Decimal]:
        """Sum of each tax component."""
        breakup = {tax_type: ZERO for tax_type in TaxType}
        for invoice in invoices:
            for tax_type, amount in invoice.tax_lines.by_type().items():
                breakup[tax_type] += amount
        return breakup

    def monthly_trend(self, rows: tuple[AggregateRow, ...]) -> tuple[AggregateRow, ...]:
        """Month rows in calendar order, most recent trend_months only."""
        ordered = sorted(rows, key=lambda row: row.key)
        return tuple(ordered[-self.config.trend_months:])

    def insights(self, invoices: list[ReconciledInvoice]) -> ReconciliationInsights:
        """Exception figures and payment holds."""
        holds = tuple(
            HoldException(
                invoice_number=invoice.invoice_number,
                reason=invoice.deductions.hold_reason or "",
                hold_amount=invoice.deductions.hold_amount,
                invoice_value=invoice.total_invoice_value,
            )
            for invoice in invoices
            if (invoice.deductions.hold_reason or "").strip() or invoice.deductions.hold_amount > 0
        )
        return ReconciliationInsights(
            excess_qty=to_quantity(sum((i.line.excess_supply_qty for i in invoices), Decimal(0))),
            lc_discrepancy=money_sum(i.deductions.lc_discrepancy_charge for i in invoices),
            bank_charges=money_sum(i.deductions.bank_charges for i in invoices),
            interest=money_sum(i.deductions.interest_on_advance for i in invoices),
            holds=holds,
        )

    def available_options(self, invoices: list[ReconciledInvoice]) -> AvailableOptions:
        """Distinct filter values across the whole batch."""
        headers = [invoice.header for invoice in invoices]
        return AvailableOptions(
            customers=_distinct(h.customer_name for h in headers),
            business_units=_distinct(h.business_unit for h in headers),
            regions=_distinct(h.region for h in headers),
            zones=_distinct(h.zone for h in headers),
            invoice_types=_distinct(h.invoice_type for h in headers),
        )
