"""Invoice input models.

These are the raw figures a persistence layer hands to the reconciler.
Nothing here is derived: totals, balances and classifications are computed
by the services and land on ReconciledInvoice.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from ledger.money import MoneyValue, QuantityValue, RateValue, ZERO


class TaxType(str, Enum):
    """GST tax components, in display order."""

    CGST = "CGST"
    SGST = "SGST"
    IGST = "IGST"
    UGST = "UGST"
    TCS = "TCS"


class InvoiceHeader(BaseModel):
    """Identifying and descriptive invoice fields."""

    invoice_number: str = Field(..., min_length=1, max_length=100)
    issue_date: date
    customer_name: str = Field(..., min_length=1, max_length=255)
    business_unit: str | None = Field(None, max_length=100)
    region: str | None = Field(None, max_length=100)
    zone: str | None = Field(None, max_length=100)
    segment: str | None = Field(None, max_length=100)
    internal_invoice_no: str | None = Field(None, max_length=100)
    invoice_type: str | None = Field(None, max_length=50)
    sales_order_no: str | None = Field(None, max_length=100)
    account_manager: str | None = Field(None, max_length=255)
    po_reference: str | None = Field(None, max_length=100)
    currency: str = Field("INR", min_length=3, max_length=3)

    model_config = {"frozen": True}


class LineValue(BaseModel):
    """Quantity, rate and value of the invoiced material plus freight."""

    quantity: QuantityValue = Decimal("0.000")
    unit: str | None = Field(None, max_length=50)
    basic_rate: MoneyValue = ZERO
    basic_value: MoneyValue | None = None  # quantity x basic_rate when omitted
    freight_rate: MoneyValue = ZERO
    freight_value: MoneyValue | None = None  # quantity x freight_rate when omitted
    excess_supply_qty: QuantityValue = Decimal("0.000")

    model_config = {"frozen": True}


class TaxLines(BaseModel):
    """Output tax lines. Sign is checked by TaxBreakdown, not here."""

    sgst_output: MoneyValue = ZERO
    cgst_output: MoneyValue = ZERO
    igst_output: MoneyValue = ZERO
    ugst_output: MoneyValue = ZERO
    tcs: MoneyValue = ZERO

    model_config = {"frozen": True}

    def by_type(self) -> dict[TaxType, Decimal]:
        """Lines keyed by tax type, in display order."""
        return {
            TaxType.CGST: self.cgst_output,
            TaxType.SGST: self.sgst_output,
            TaxType.IGST: self.igst_output,
            TaxType.UGST: self.ugst_output,
            TaxType.TCS: self.tcs,
        }


class InstallmentOverride(BaseModel):
    """
    Caller-supplied values for one installment stage.

    Any field left as None is derived from payment terms and the split.
    """

    stage: int = Field(..., ge=1, le=3)
    due_date: date | None = None
    due_amount: MoneyValue | None = None
    received_amount: MoneyValue | None = None
    receipt_date: date | None = None

    model_config = {"frozen": True}


class DeductionCategory(str, Enum):
    """Reporting group for deduction lines."""

    STATUTORY = "statutory"
    CHARGES = "charges"
    RISK = "risk"
    OTHER = "other"


class DeductionSet(BaseModel):
    """Statutory and contractual deduction lines."""

    # Statutory
    it_tds_2_percent_service: MoneyValue = ZERO
    it_tds_1_percent_194q_supply: MoneyValue = ZERO
    lcess_boq_1_percent_works: MoneyValue = ZERO
    tds_2_percent_cgst_sgst: MoneyValue = ZERO
    tds_on_cgst_1_percent: MoneyValue = ZERO
    tds_on_sgst_1_percent: MoneyValue = ZERO

    # Charges
    bank_charges: MoneyValue = ZERO
    lc_discrepancy_charge: MoneyValue = ZERO

    # Risk
    provision_for_bad_debts: MoneyValue = ZERO
    bad_debts: MoneyValue = ZERO

    # Other
    excess_supply_adjustment: MoneyValue = ZERO
    interest_on_advance: MoneyValue = ZERO
    hold_amount: MoneyValue = ZERO
    penalty_ld_deduction: MoneyValue = ZERO

    hold_reason: str | None = Field(None, max_length=500)

    model_config = {"frozen": True}

    def lines(self) -> dict[str, Decimal]:
        """Amount per deduction line, keyed by field name."""
        return {name: getattr(self, name) for name in DEDUCTION_CATEGORIES}


class InvoiceInput(BaseModel):
    """Everything needed to reconcile one invoice."""

    header: InvoiceHeader
    line: LineValue = LineValue()
    tax_lines: TaxLines = TaxLines()

    # Stated totals, checked against computed values when present
    sub_total: MoneyValue | None = None
    total_invoice_value: MoneyValue | None = None
    explicit_tax_rate: RateValue | None = None

    payment_terms: str | None = Field(None, max_length=255)
    payment_terms_days: int | None = Field(None, ge=0, le=3650)
    installment_split: tuple[Decimal, Decimal, Decimal] = (Decimal(100), Decimal(0), Decimal(0))
    installments: tuple[InstallmentOverride, ...] = ()

    deductions: DeductionSet = DeductionSet()

    model_config = {"frozen": True}

    @field_validator("installment_split")
    @classmethod
    def validate_split(cls, value: tuple[Decimal, Decimal, Decimal]) -> tuple[Decimal, Decimal, Decimal]:
        """Split percentages must be non-negative and total 100."""
        if any(part < 0 for part in value):
            raise ValueError("installment_split percentages must not be negative")
        if sum(value) != 100:
            raise ValueError("installment_split percentages must total 100")
        return value

    @field_validator("installments")
    @classmethod
    def validate_unique_stages(cls, value: tuple[InstallmentOverride, ...]) -> tuple[InstallmentOverride, ...]:
        """At most one override per stage."""
        stages = [override.stage for override in value]
        if len(stages) != len(set(stages)):
            raise ValueError("Duplicate installment stage override")
        return value

    def override_for(self, stage: int) -> InstallmentOverride | None:
        """Override for a stage, if one was supplied."""
        for override in self.installments:
            if override.stage == stage:
                return override
        return None


# Deduction line -> reporting category
DEDUCTION_CATEGORIES: dict[str, DeductionCategory] = {
    "it_tds_2_percent_service": DeductionCategory.STATUTORY,
    "it_tds_1_percent_194q_supply": DeductionCategory.STATUTORY,
    "lcess_boq_1_percent_works": DeductionCategory.STATUTORY,
    "tds_2_percent_cgst_sgst": DeductionCategory.STATUTORY,
    "tds_on_cgst_1_percent": DeductionCategory.STATUTORY,
    "tds_on_sgst_1_percent": DeductionCategory.STATUTORY,
    "bank_charges": DeductionCategory.CHARGES,
    "lc_discrepancy_charge": DeductionCategory.CHARGES,
    "provision_for_bad_debts": DeductionCategory.RISK,
    "bad_debts": DeductionCategory.RISK,
    "excess_supply_adjustment": DeductionCategory.OTHER,
    "interest_on_advance": DeductionCategory.OTHER,
    "hold_amount": DeductionCategory.OTHER,
    "penalty_ld_deduction": DeductionCategory.OTHER,
}
