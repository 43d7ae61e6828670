"""
Dimension rollups over reconciled invoices.

Every call is a full recompute over the invoices it is given. Group sums
are associative and commutative, so a large batch can be split, each shard
reduced with partial(), and the shards combined with merge() before
finalize() ranks the rows.

Groups are identified by their raw dimension values, so a missing value
never merges with a real value spelled like the unknown label, and
("North - East", "Z1") stays apart from ("North", "East - Z1").

Ranking: primary amount descending, ties by display key, then by identity.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Iterable

from ledger.config import LedgerConfig
from ledger.models import (
    AggregateMetric,
    AggregateRow,
    AggregationResult,
    Dimension,
    DimensionSpec,
    InvoiceFilter,
    Outcome,
    ReconciledInvoice,
    ReconciliationFailure,
)
from ledger.money import ZERO, to_money

logger = logging.getLogger(__name__)

_SUMMED_FIELDS = (
    "invoice_value",
    "total_tax",
    "total_balance",
    "not_due_total",
    "over_due_total",
    "total_deductions",
    "net_collectible",
)

METRIC_FIELD: dict[AggregateMetric, str] = {
    AggregateMetric.INVOICE_VALUE: "invoice_value",
    AggregateMetric.TOTAL_BALANCE: "total_balance",
    AggregateMetric.OVER_DUE: "over_due_total",
    AggregateMetric.NOT_DUE: "not_due_total",
    AggregateMetric.NET_COLLECTIBLE: "net_collectible",
    AggregateMetric.TOTAL_TAX: "total_tax",
}

# One (missing, value) pair per key component; missing sorts after any value
GroupIdentity = tuple[tuple[bool, str], ...]


def _identity_part(value: str | None) -> tuple[bool, str]:
    return (False, value) if value else (True, "")


@dataclass(frozen=True)
class GroupTotals:
    """Running sums for one group key."""

    key: str
    labels: dict[str, str]
    count: int = 0
    invoice_value: Decimal = ZERO
    total_tax: Decimal = ZERO
    total_balance: Decimal = ZERO
    not_due_total: Decimal = ZERO
    over_due_total: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_collectible: Decimal = ZERO

    def add(self, invoice: ReconciledInvoice) -> "GroupTotals":
        """Totals with one more invoice folded in."""
        return replace(
            self,
            count=self.count + 1,
            invoice_value=self.invoice_value + invoice.total_invoice_value,
            total_tax=self.total_tax + invoice.total_tax,
            total_balance=self.total_balance + invoice.total_balance,
            not_due_total=self.not_due_total + invoice.not_due_total,
            over_due_total=self.over_due_total + invoice.over_due_total,
            total_deductions=self.total_deductions + invoice.total_deductions,
            net_collectible=self.net_collectible + invoice.net_collectible,
        )

    def merge(self, other: "GroupTotals") -> "GroupTotals":
        """Combined totals of two shards of the same group."""
        sums = {name: getattr(self, name) + getattr(other, name) for name in _SUMMED_FIELDS}
        return replace(self, count=self.count + other.count, **sums)


@dataclass(frozen=True)
class PartialAggregate:
    """Group sums for one shard of invoices, before ranking."""

    dimension: Dimension
    groups: dict[GroupIdentity, GroupTotals] = field(default_factory=dict)
    excluded_count: int = 0


class AggregationEngine:
    """Groups reconciled invoices by a dimension and ranks the groups."""

    def __init__(self, config: LedgerConfig | None = None):
        self.config = config or LedgerConfig()

    def group_key(
        self,
        invoice: ReconciledInvoice,
        dimension: Dimension,
    ) -> tuple[GroupIdentity, str, dict[str, str]]:
        """
        Group identity, display key and labels of an invoice for a dimension.

        Missing text values are shown as the configured unknown label but
        keep an identity of their own. Multi-part keys are displayed as
        "<region> - <zone>".
        """
        header = invoice.header

        if dimension == Dimension.CUSTOMER:
            values = {"customer": header.customer_name}
        elif dimension == Dimension.REGION_ZONE:
            values = {"region": header.region, "zone": header.zone}
        elif dimension == Dimension.BUSINESS_UNIT:
            values = {"business_unit": header.business_unit}
        elif dimension == Dimension.TAX_TYPE:
            values = {"tax_type": invoice.tax_type}
        elif dimension == Dimension.MONTH:
            values = {"month": f"{header.issue_date.year:04d}-{header.issue_date.month:02d}"}
        else:
            raise ValueError(f"Unsupported dimension: {dimension}")

        labels = {name: value or self.config.unknown_label for name, value in values.items()}
        identity = tuple(_identity_part(value) for value in values.values())
        return identity, " - ".join(labels.values()), labels

    def partial(
        self,
        outcomes: Iterable[Outcome],
        dimension: Dimension,
        as_of_date: date | None = None,
    ) -> PartialAggregate:
        """
        Group sums for a shard of outcomes.

        Failures are counted, never summed.

        Raises:
            ValueError: If as_of_date is given and an invoice was reconciled
                as of a different date
        """
        groups: dict[GroupIdentity, GroupTotals] = {}
        excluded = 0

        for outcome in outcomes:
            if isinstance(outcome, ReconciliationFailure):
                excluded += 1
                continue
            if as_of_date is not None and outcome.as_of_date != as_of_date:
                raise ValueError(
                    f"Invoice {outcome.invoice_number} was reconciled as of "
                    f"{outcome.as_of_date}, not {as_of_date}"
                )
            identity, key, labels = self.group_key(outcome, dimension)
            totals = groups.get(identity) or GroupTotals(key=key, labels=labels)
            groups[identity] = totals.add(outcome)

        return PartialAggregate(dimension=dimension, groups=groups, excluded_count=excluded)

    def merge(self, partials: Iterable[PartialAggregate]) -> PartialAggregate:
        """
        Combine shard results.

        Raises:
            ValueError: If the shards were grouped by different dimensions,
                or there are none
        """
        partials = list(partials)
        if not partials:
            raise ValueError("Nothing to merge")

        dimension = partials[0].dimension
        groups: dict[GroupIdentity, GroupTotals] = {}
        excluded = 0

        for part in partials:
            if part.dimension != dimension:
                raise ValueError(
                    f"Cannot merge {part.dimension.value} rollup into {dimension.value}"
                )
            excluded += part.excluded_count
            for identity, totals in part.groups.items():
                groups[identity] = groups[identity].merge(totals) if identity in groups else totals

        return PartialAggregate(dimension=dimension, groups=groups, excluded_count=excluded)

    def finalize(
        self,
        partial: PartialAggregate,
        spec: DimensionSpec,
        as_of_date: date | None = None,
    ) -> AggregationResult:
        """Turn group sums into ranked rows."""
        if partial.dimension != spec.dimension:
            raise ValueError(
                f"Rollup is by {partial.dimension.value}, spec asks for {spec.dimension.value}"
            )

        metric_field = METRIC_FIELD[spec.metric]
        ranked = []
        for identity, totals in partial.groups.items():
            sums = {name: to_money(getattr(totals, name)) for name in _SUMMED_FIELDS}
            row = AggregateRow(
                dimension=spec.dimension,
                key=totals.key,
                labels=totals.labels,
                amount=sums[metric_field],
                count=totals.count,
                **sums,
            )
            ranked.append((identity, row))

        ranked.sort(key=lambda item: (-item[1].amount, item[1].key, item[0]))
        rows = [row for _, row in ranked]
        if spec.limit is not None:
            rows = rows[:spec.limit]

        return AggregationResult(
            dimension=spec.dimension,
            metric=spec.metric,
            rows=tuple(rows),
            excluded_count=partial.excluded_count,
            as_of_date=as_of_date,
        )

    def aggregate(
        self,
        outcomes: Iterable[Outcome],
        spec: DimensionSpec,
        as_of_date: date | None = None,
    ) -> AggregationResult:
        """
        Roll reconciled invoices up by a dimension.

        Args:
            outcomes: Reconciled invoices and failures (failures are excluded
                and counted)
            spec: Dimension, ranking metric and optional row limit
            as_of_date: Expected as-of date of every invoice

        Returns:
            AggregationResult with rows sorted by amount desc, key asc
        """
        result = self.finalize(self.partial(outcomes, spec.dimension, as_of_date), spec, as_of_date)
        logger.debug(
            "Aggregated by %s: %d rows, %d excluded",
            spec.dimension.value,
            len(result.rows),
            result.excluded_count,
        )
        return result

    def select(self, invoices: Iterable[ReconciledInvoice], filters: InvoiceFilter) -> list[ReconciledInvoice]:
        """Invoices matching every set filter."""
        return [invoice for invoice in invoices if self._matches(invoice, filters)]

    def _matches(self, invoice: ReconciledInvoice, filters: InvoiceFilter) -> bool:
        header = invoice.header
        if filters.date_from is not None and header.issue_date < filters.date_from:
            return False
        if filters.date_to is not None and header.issue_date > filters.date_to:
            return False

        exact = (
            (filters.customer, header.customer_name),
            (filters.business_unit, header.business_unit),
            (filters.region, header.region),
            (filters.zone, header.zone),
            (filters.invoice_type, header.invoice_type),
        )
        for wanted, actual in exact:
            if wanted is not None and wanted != actual:
                return False

        if filters.amount_min is not None and invoice.total_invoice_value < filters.amount_min:
            return False
        if filters.amount_max is not None and invoice.total_invoice_value > filters.amount_max:
            return False

        if filters.tax_types:
            lines = invoice.tax_lines.by_type()
            if not any(lines[tax_type] > 0 for tax_type in filters.tax_types):
                return False

        return True
