"""Tests for AggregationEngine."""

from datetime import date
from decimal import Decimal

import pytest

from conftest import build_invoice
from ledger.exceptions import ReconciliationErrorKind
from ledger.models import (
    AggregateMetric,
    Dimension,
    DimensionSpec,
    InvoiceFilter,
    ReconciliationFailure,
    TaxType,
)

AS_OF = date(2025, 3, 15)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def invoices(reconciler):
    """
    Three reconciled invoices:

    A: Acme, North/Z1, Steel, CGST+SGST, 11,800, Jan 2025 (overdue)
    B: Bolt, South/Z2, Cement, IGST, 5,900, Feb 2025 (overdue)
    C: Acme, North/Z1, Steel, CGST+SGST, 2,360, Feb 2025 (not due)
    """
    inputs = [
        build_invoice(number="A", issue_date=date(2025, 1, 10)),
        build_invoice(
            number="B", customer="Bolt Cement", region="South", zone="Z2",
            business_unit="Cement", issue_date=date(2025, 2, 3),
            basic_value="5000", cgst="0", sgst="0", igst="900",
        ),
        build_invoice(
            number="C", issue_date=date(2025, 2, 20),
            basic_value="2000", cgst="180", sgst="180",
        ),
    ]
    return [reconciler.reconcile(invoice, AS_OF) for invoice in inputs]


def _failure(index=0):
    return ReconciliationFailure(
        index=index,
        invoice_number="BAD",
        kind=ReconciliationErrorKind.AMOUNT_MISMATCH,
        message="mismatch",
    )


# =============================================================================
# GROUPING
# =============================================================================


class TestAggregate:

    def test_region_zone(self, engine, invoices):
        result = engine.aggregate(invoices, DimensionSpec(dimension=Dimension.REGION_ZONE), AS_OF)
        assert [(row.key, row.amount, row.count) for row in result.rows] == [
            ("North - Z1", Decimal("14160.00"), 2),
            ("South - Z2", Decimal("5900.00"), 1),
        ]
        assert result.rows[0].labels == {"region": "North", "zone": "Z1"}

    def test_tax_type(self, engine, invoices):
        result = engine.aggregate(invoices, DimensionSpec(dimension=Dimension.TAX_TYPE), AS_OF)
        assert [(row.key, row.amount) for row in result.rows] == [
            ("CGST+SGST", Decimal("14160.00")),
            ("IGST", Decimal("5900.00")),
        ]

    def test_month_ranked_by_amount(self, engine, invoices):
        result = engine.aggregate(invoices, DimensionSpec(dimension=Dimension.MONTH), AS_OF)
        assert [(row.key, row.amount) for row in result.rows] == [
            ("2025-01", Decimal("11800.00")),
            ("2025-02", Decimal("8260.00")),
        ]

    def test_over_due_metric(self, engine, invoices):
        spec = DimensionSpec(dimension=Dimension.CUSTOMER, metric=AggregateMetric.OVER_DUE)
        result = engine.aggregate(invoices, spec, AS_OF)
        acme = next(row for row in result.rows if row.key == "Acme Steel")
        assert acme.amount == Decimal("11800.00")
        assert acme.not_due_total == Decimal("2360.00")
        assert acme.invoice_value == Decimal("14160.00")

    def test_row_sums_add_up(self, engine, invoices):
        result = engine.aggregate(invoices, DimensionSpec(dimension=Dimension.BUSINESS_UNIT), AS_OF)
        assert sum(row.invoice_value for row in result.rows) == sum(i.total_invoice_value for i in invoices)
        for row in result.rows:
            assert row.not_due_total + row.over_due_total == row.total_balance

    def test_input_order_does_not_matter(self, engine, invoices):
        spec = DimensionSpec(dimension=Dimension.REGION_ZONE)
        forward = engine.aggregate(invoices, spec, AS_OF)
        backward = engine.aggregate(list(reversed(invoices)), spec, AS_OF)
        assert forward == backward

    def test_ties_broken_by_key(self, engine, reconciler):
        invoices = [
            reconciler.reconcile(build_invoice(number="1", customer="Zeta"), AS_OF),
            reconciler.reconcile(build_invoice(number="2", customer="Alpha"), AS_OF),
        ]
        result = engine.aggregate(invoices, DimensionSpec(dimension=Dimension.CUSTOMER), AS_OF)
        assert [row.key for row in result.rows] == ["Alpha", "Zeta"]

    def test_limit(self, engine, invoices):
        spec = DimensionSpec(dimension=Dimension.CUSTOMER, limit=1)
        result = engine.aggregate(invoices, spec, AS_OF)
        assert [row.key for row in result.rows] == ["Acme Steel"]

    def test_missing_values_group_under_unknown(self, engine, reconciler):
        invoice = reconciler.reconcile(build_invoice(region=None, zone=None, business_unit=None), AS_OF)
        by_region = engine.aggregate([invoice], DimensionSpec(dimension=Dimension.REGION_ZONE), AS_OF)
        by_unit = engine.aggregate([invoice], DimensionSpec(dimension=Dimension.BUSINESS_UNIT), AS_OF)
        assert by_region.rows[0].key == "Unknown - Unknown"
        assert by_unit.rows[0].key == "Unknown"

    def test_separator_in_values_does_not_merge_groups(self, engine, reconciler):
        invoices = [
            reconciler.reconcile(build_invoice(number="1", region="North - East", zone="Z1"), AS_OF),
            reconciler.reconcile(build_invoice(number="2", region="North", zone="East - Z1"), AS_OF),
        ]
        spec = DimensionSpec(dimension=Dimension.REGION_ZONE)

        result = engine.aggregate(invoices, spec, AS_OF)

        assert [row.count for row in result.rows] == [1, 1]
        assert {row.key for row in result.rows} == {"North - East - Z1"}
        assert [row.labels for row in result.rows] == [
            {"region": "North", "zone": "East - Z1"},
            {"region": "North - East", "zone": "Z1"},
        ]
        assert engine.aggregate(list(reversed(invoices)), spec, AS_OF) == result

    def test_missing_value_kept_apart_from_unknown_text(self, engine, reconciler):
        invoices = [
            reconciler.reconcile(build_invoice(number="1", business_unit=None), AS_OF),
            reconciler.reconcile(build_invoice(number="2", business_unit="Unknown"), AS_OF),
        ]
        spec = DimensionSpec(dimension=Dimension.BUSINESS_UNIT)

        result = engine.aggregate(invoices, spec, AS_OF)

        assert [(row.key, row.count) for row in result.rows] == [("Unknown", 1), ("Unknown", 1)]
        assert engine.aggregate(list(reversed(invoices)), spec, AS_OF) == result

    def test_missing_value_groups_merge_across_shards(self, engine, reconciler):
        invoices = [
            reconciler.reconcile(build_invoice(number=str(n), business_unit=None), AS_OF)
            for n in range(2)
        ]
        shards = [engine.partial([invoice], Dimension.BUSINESS_UNIT, AS_OF) for invoice in invoices]
        merged = engine.finalize(engine.merge(shards), DimensionSpec(dimension=Dimension.BUSINESS_UNIT), AS_OF)
        assert [(row.key, row.count) for row in merged.rows] == [("Unknown", 2)]

    def test_failures_excluded_and_counted(self, engine, invoices):
        outcomes = [invoices[0], _failure(1), invoices[1]]
        result = engine.aggregate(outcomes, DimensionSpec(dimension=Dimension.CUSTOMER), AS_OF)
        assert result.excluded_count == 1
        assert sum(row.count for row in result.rows) == 2

    def test_empty_input(self, engine):
        result = engine.aggregate([], DimensionSpec(dimension=Dimension.CUSTOMER), AS_OF)
        assert result.rows == ()
        assert result.excluded_count == 0

    def test_as_of_mismatch_rejected(self, engine, reconciler):
        invoice = reconciler.reconcile(build_invoice(), date(2025, 1, 1))
        with pytest.raises(ValueError, match="reconciled as of"):
            engine.aggregate([invoice], DimensionSpec(dimension=Dimension.CUSTOMER), AS_OF)


# =============================================================================
# PARTIAL AND MERGE
# =============================================================================


class TestPartialMerge:

    def test_sharded_equals_whole(self, engine, invoices):
        spec = DimensionSpec(dimension=Dimension.REGION_ZONE)
        whole = engine.aggregate(invoices + [_failure()], spec, AS_OF)

        shards = [
            engine.partial([invoices[2], _failure()], spec.dimension, AS_OF),
            engine.partial([invoices[0], invoices[1]], spec.dimension, AS_OF),
        ]
        merged = engine.finalize(engine.merge(shards), spec, AS_OF)

        assert merged == whole

    def test_merge_rejects_mixed_dimensions(self, engine, invoices):
        shards = [
            engine.partial(invoices, Dimension.CUSTOMER),
            engine.partial(invoices, Dimension.MONTH),
        ]
        with pytest.raises(ValueError, match="Cannot merge"):
            engine.merge(shards)

    def test_merge_rejects_empty(self, engine):
        with pytest.raises(ValueError, match="Nothing to merge"):
            engine.merge([])

    def test_finalize_checks_dimension(self, engine, invoices):
        partial = engine.partial(invoices, Dimension.CUSTOMER)
        with pytest.raises(ValueError):
            engine.finalize(partial, DimensionSpec(dimension=Dimension.MONTH))


# =============================================================================
# FILTERS
# =============================================================================


class TestSelect:

    def test_no_filters_keeps_everything(self, engine, invoices):
        assert engine.select(invoices, InvoiceFilter()) == invoices

    def test_date_range(self, engine, invoices):
        selected = engine.select(invoices, InvoiceFilter(date_from=date(2025, 2, 1), date_to=date(2025, 2, 10)))
        assert [i.invoice_number for i in selected] == ["B"]

    def test_customer_and_region(self, engine, invoices):
        selected = engine.select(invoices, InvoiceFilter(customer="Acme Steel", region="North"))
        assert [i.invoice_number for i in selected] == ["A", "C"]

    def test_amount_range(self, engine, invoices):
        selected = engine.select(invoices, InvoiceFilter(amount_min="3000", amount_max="6000"))
        assert [i.invoice_number for i in selected] == ["B"]

    def test_tax_types(self, engine, invoices):
        selected = engine.select(invoices, InvoiceFilter(tax_types=[TaxType.IGST]))
        assert [i.invoice_number for i in selected] == ["B"]
