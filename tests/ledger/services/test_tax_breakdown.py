"""Tests for TaxBreakdown."""

from decimal import Decimal

import pytest

from ledger.exceptions import InvalidAmountError, ReconciliationErrorKind
from ledger.models import TaxLines
from ledger.services.tax_breakdown import EXEMPT_LABEL, TaxBreakdown


@pytest.fixture
def tax():
    return TaxBreakdown()


class TestCompute:

    def test_intra_state_gst(self, tax):
        """10,000 basic with 9% CGST + 9% SGST is 1,800 tax at 18%."""
        result = tax.compute(TaxLines(cgst_output="900", sgst_output="900"), Decimal("10000"))
        assert result.total_tax == Decimal("1800.00")
        assert result.effective_rate == Decimal("18.00")

    def test_rate_rounded_half_up(self, tax):
        result = tax.compute(TaxLines(igst_output="100"), Decimal("3000"))
        assert result.effective_rate == Decimal("3.33")

    def test_tcs_counts_toward_total(self, tax):
        result = tax.compute(TaxLines(igst_output="1800", tcs="11.80"), Decimal("10000"))
        assert result.total_tax == Decimal("1811.80")

    def test_zero_basic_value_has_zero_rate(self, tax):
        result = tax.compute(TaxLines(igst_output="50"), Decimal("0"))
        assert result.total_tax == Decimal("50.00")
        assert result.effective_rate == Decimal("0.00")

    def test_explicit_rate_wins(self, tax):
        result = tax.compute(TaxLines(igst_output="1799"), Decimal("10000"), Decimal("18"))
        assert result.effective_rate == Decimal("18.00")

    def test_explicit_rate_ignored_without_basic_value(self, tax):
        result = tax.compute(TaxLines(), Decimal("0"), Decimal("18"))
        assert result.effective_rate == Decimal("0.00")

    def test_negative_tax_line_rejected(self, tax):
        with pytest.raises(InvalidAmountError) as exc_info:
            tax.compute(TaxLines(igst_output="-1"), Decimal("100"))
        assert exc_info.value.field == "igst_output"
        assert exc_info.value.kind == ReconciliationErrorKind.INVALID_AMOUNT

    def test_negative_explicit_rate_rejected(self, tax):
        with pytest.raises(InvalidAmountError, match="explicit_tax_rate"):
            tax.compute(TaxLines(), Decimal("100"), Decimal("-5"))


class TestTaxTypeLabel:

    def test_intra_state(self, tax):
        assert tax.tax_type_label(TaxLines(cgst_output="9", sgst_output="9")) == "CGST+SGST"

    def test_inter_state(self, tax):
        assert tax.tax_type_label(TaxLines(igst_output="18")) == "IGST"

    def test_no_tax_is_exempt(self, tax):
        assert tax.tax_type_label(TaxLines()) == EXEMPT_LABEL
