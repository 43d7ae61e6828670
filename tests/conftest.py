"""Shared test fixtures for the receivables ledger test suite."""

from datetime import date

import pytest

from ledger.config import LedgerConfig
from ledger.models import (
    DeductionSet,
    InstallmentOverride,
    InvoiceHeader,
    InvoiceInput,
    LineValue,
    TaxLines,
)


# =============================================================================
# CONSTANTS
# =============================================================================

ISSUE_DATE = date(2025, 1, 1)


# =============================================================================
# INVOICE FACTORY
# =============================================================================


def build_invoice(
    number: str = "INV-001",
    customer: str = "Acme Steel",
    region: str | None = "North",
    zone: str | None = "Z1",
    business_unit: str | None = "Steel",
    issue_date: date = ISSUE_DATE,
    basic_value: str | None = "10000.00",
    cgst: str = "900.00",
    sgst: str = "900.00",
    igst: str = "0",
    tcs: str = "0",
    total: str | None = None,
    payment_terms: str | None = "Net 30",
    installments: tuple[InstallmentOverride, ...] = (),
    deductions: DeductionSet | None = None,
    **fields,
) -> InvoiceInput:
    """
    An InvoiceInput with sensible defaults.

    The default is 10,000 basic + 9% CGST + 9% SGST = 11,800, Net 30.
    """
    line_fields = fields.pop("line", {})
    return InvoiceInput(
        header=InvoiceHeader(
            invoice_number=number,
            issue_date=issue_date,
            customer_name=customer,
            region=region,
            zone=zone,
            business_unit=business_unit,
            invoice_type=fields.pop("invoice_type", "Supply"),
        ),
        line=LineValue(basic_value=basic_value, **line_fields),
        tax_lines=TaxLines(cgst_output=cgst, sgst_output=sgst, igst_output=igst, tcs=tcs),
        total_invoice_value=total,
        payment_terms=payment_terms,
        installments=installments,
        deductions=deductions or DeductionSet(),
        **fields,
    )


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def config() -> LedgerConfig:
    return LedgerConfig()


@pytest.fixture
def reconciler(config):
    from ledger.services.reconciler import InvoiceReconciler
    return InvoiceReconciler(config)


@pytest.fixture
def engine(config):
    from ledger.services.aggregation import AggregationEngine
    return AggregationEngine(config)


@pytest.fixture
def invoice() -> InvoiceInput:
    """Default 11,800 invoice issued 2025-01-01, Net 30."""
    return build_invoice()
