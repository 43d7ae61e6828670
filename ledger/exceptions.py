"""Typed exceptions for reconciliation failures."""

from decimal import Decimal
from enum import Enum


class ReconciliationErrorKind(str, Enum):
    """Why an invoice could not be reconciled."""

    INVALID_AMOUNT = "invalid_amount"
    AMOUNT_MISMATCH = "amount_mismatch"
    INVALID_INPUT = "invalid_input"


class LedgerError(Exception):
    """Base class for receivables ledger errors."""


class ReconciliationError(LedgerError):
    """
    An invoice failed validation and was not reconciled.

    Carries enough context for a batch caller to report the failure
    without re-running the invoice.
    """

    kind: ReconciliationErrorKind = ReconciliationErrorKind.INVALID_INPUT

    def __init__(self, message: str, field: str | None = None, invoice_number: str | None = None):
        self.field = field
        self.invoice_number = invoice_number
        super().__init__(message)


class InvalidAmountError(ReconciliationError):
    """A monetary or quantity field is negative where it must not be."""

    kind = ReconciliationErrorKind.INVALID_AMOUNT

    def __init__(self, field: str, value: Decimal, invoice_number: str | None = None):
        self.value = value
        super().__init__(f"{field} must not be negative (got {value})", field, invoice_number)


class AmountMismatchError(ReconciliationError):
    """
    A stated total does not match the computed total beyond tolerance.

    Never auto-corrected. Both figures are kept so the caller can show them.
    """

    kind = ReconciliationErrorKind.AMOUNT_MISMATCH

    def __init__(
        self,
        field: str,
        stated: Decimal,
        computed: Decimal,
        tolerance: Decimal,
        invoice_number: str | None = None,
    ):
        self.stated = stated
        self.computed = computed
        self.tolerance = tolerance
        super().__init__(
            f"{field} stated as {stated} but computes to {computed} (tolerance {tolerance})",
            field,
            invoice_number,
        )


class AmountOutOfRangeError(ReconciliationError):
    """A derived amount is too large to hold at currency precision."""

    kind = ReconciliationErrorKind.INVALID_AMOUNT
