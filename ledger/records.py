"""
Flat sales-invoice rows to InvoiceInput.

The persistence layer stores one wide row per invoice (the
sales_invoice_master layout). This module maps those columns onto the
nested input models. Stored derived columns (stage balances, not-due and
overdue buckets, payment-receipt day counts, total balance) are ignored:
they are recomputed on every reconciliation.
"""

from datetime import datetime
from typing import Any, Mapping

from ledger.models import InvoiceInput
from ledger.money import parse_amount

HEADER_COLUMNS = {
    "gst_tax_invoice_no": "invoice_number",
    "gst_tax_invoice_date": "issue_date",
    "customer_name": "customer_name",
    "business_unit": "business_unit",
    "region": "region",
    "zone": "zone",
    "segment": "segment",
    "internal_invoice_no": "internal_invoice_no",
    "invoice_type": "invoice_type",
    "sales_order_no": "sales_order_no",
    "account_manager_name": "account_manager",
    "po_no_reference": "po_reference",
    "currency": "currency",
}

LINE_COLUMNS = {
    "qty": "quantity",
    "unit": "unit",
    "basic_rate": "basic_rate",
    "basic_value": "basic_value",
    "freight_rate": "freight_rate",
    "freight_value": "freight_value",
    "excess_supply_qty": "excess_supply_qty",
}

TAX_COLUMNS = ("sgst_output", "cgst_output", "igst_output", "ugst_output", "tcs")

DEDUCTION_COLUMNS = (
    "it_tds_2_percent_service",
    "it_tds_1_percent_194q_supply",
    "lcess_boq_1_percent_works",
    "tds_2_percent_cgst_sgst",
    "tds_on_cgst_1_percent",
    "tds_on_sgst_1_percent",
    "interest_on_advance",
    "penalty_ld_deduction",
    "bank_charges",
    "lc_discrepancy_charge",
    "provision_for_bad_debts",
    "bad_debts",
)

STAGE_PREFIXES = {1: "first", 2: "second", 3: "third"}


def _value(row: Mapping[str, Any], column: str) -> Any:
    """Column value with blanks as None and timestamps as dates."""
    value = row.get(column)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    if isinstance(value, datetime):
        return value.date()
    return value


def _present(row: Mapping[str, Any], columns: Mapping[str, str]) -> dict[str, Any]:
    values = {}
    for column, field in columns.items():
        value = _value(row, column)
        if value is not None:
            values[field] = value
    return values


def _is_zero(value: Any) -> bool:
    if isinstance(value, str):
        try:
            return parse_amount(value) == 0
        except ValueError:
            return False
    return value == 0


def _stage_override(row: Mapping[str, Any], stage: int) -> dict[str, Any] | None:
    prefix = STAGE_PREFIXES[stage]
    override = _present(row, {
        f"{prefix}_due_date": "due_date",
        f"{prefix}_due_amount": "due_amount",
        f"payment_received_amount_{prefix}_due": "received_amount",
        f"receipt_date_{prefix}_due": "receipt_date",
    })
    # Stored rows default unused amounts to 0; a zero due amount means "not entered"
    if "due_amount" in override and _is_zero(override["due_amount"]):
        del override["due_amount"]
    if not override:
        return None
    return {"stage": stage, **override}


def invoice_input_from_record(row: Mapping[str, Any]) -> InvoiceInput:
    """
    Build an InvoiceInput from a flat sales-invoice row.

    Args:
        row: Column name -> value. Amounts may be Decimal, int or
            spreadsheet-style strings ("1,18,000.00").

    Returns:
        InvoiceInput

    Raises:
        pydantic.ValidationError: If required columns are missing or a value
            cannot be parsed
    """
    tax_lines = {column: _value(row, column) for column in TAX_COLUMNS}
    deductions = {column: _value(row, column) for column in DEDUCTION_COLUMNS}

    hold_reason = _value(row, "any_hold")
    if hold_reason is not None:
        deductions["hold_reason"] = str(hold_reason)

    data: dict[str, Any] = {
        "header": _present(row, HEADER_COLUMNS),
        "line": _present(row, LINE_COLUMNS),
        "tax_lines": {k: v for k, v in tax_lines.items() if v is not None},
        "deductions": {k: v for k, v in deductions.items() if v is not None},
        "installments": [
            override for override in (_stage_override(row, stage) for stage in STAGE_PREFIXES)
            if override is not None
        ],
    }

    for column, field in (("subtotal", "sub_total"), ("total_invoice_value", "total_invoice_value")):
        value = _value(row, column)
        if value is not None:
            data[field] = value

    payment_terms = _value(row, "payment_terms")
    if payment_terms is not None:
        data["payment_terms"] = str(payment_terms)

    return InvoiceInput.model_validate(data)
