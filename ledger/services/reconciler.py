"""
Invoice reconciliation.

Composes TaxBreakdown, InstallmentLedger and DeductionLedger for one
invoice and checks the stated totals against the computed ones. Pure: the
same input and as-of date always produce an equal ReconciledInvoice.

Batch reconciliation never stops at a bad invoice. Each failure becomes a
typed ReconciliationFailure in the batch result.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping

from ledger.config import LedgerConfig
from ledger.exceptions import (
    AmountMismatchError,
    AmountOutOfRangeError,
    InvalidAmountError,
    ReconciliationError,
    ReconciliationErrorKind,
)
from ledger.models import (
    BatchResult,
    InvoiceInput,
    LineValue,
    Outcome,
    ReconciledInvoice,
    ReconciliationFailure,
)
from ledger.money import ZERO, AmountRangeError, to_money
from ledger.services.deduction_ledger import DeductionLedger
from ledger.services.installment_ledger import InstallmentLedger
from ledger.services.tax_breakdown import TaxBreakdown
from utils.timezone import business_today

logger = logging.getLogger(__name__)

RecordLoader = Callable[[Mapping[str, Any]], InvoiceInput]


class InvoiceReconciler:
    """Produces ReconciledInvoice views from invoice inputs."""

    def __init__(
        self,
        config: LedgerConfig | None = None,
        tax: TaxBreakdown | None = None,
        installments: InstallmentLedger | None = None,
        deductions: DeductionLedger | None = None,
    ):
        self.config = config or LedgerConfig()
        self.tax = tax or TaxBreakdown()
        self.installments = installments or InstallmentLedger(self.config)
        self.deductions = deductions or DeductionLedger()

    def default_as_of(self) -> date:
        """Today in the business timezone."""
        return business_today(self.config.business_timezone)

    def _check_stated(self, field: str, stated: Decimal | None, computed: Decimal, tolerance: Decimal) -> None:
        if stated is not None and abs(stated - computed) > tolerance:
            raise AmountMismatchError(field, stated, computed, tolerance)

    def _line_values(self, line: LineValue) -> tuple[Decimal, Decimal]:
        """(basic_value, freight_value), deriving whichever was omitted."""
        for name in ("quantity", "basic_rate", "basic_value", "freight_rate", "freight_value", "excess_supply_qty"):
            value = getattr(line, name)
            if value is not None and value < 0:
                raise InvalidAmountError(name, value)

        computed_basic = to_money(line.quantity * line.basic_rate)
        if line.basic_value is None:
            basic_value = computed_basic
        else:
            basic_value = line.basic_value
            # Only meaningful when both factors were supplied
            if line.quantity > 0 and line.basic_rate > 0:
                self._check_stated(
                    "basic_value", basic_value, computed_basic, self.config.line_value_tolerance
                )

        if line.freight_value is None:
            freight_value = to_money(line.quantity * line.freight_rate)
        else:
            freight_value = line.freight_value

        return basic_value, freight_value

    def reconcile(self, invoice: InvoiceInput, as_of_date: date | None = None) -> ReconciledInvoice:
        """
        Reconcile one invoice.

        Args:
            invoice: Invoice input
            as_of_date: Classification date (defaults to today in the business timezone)

        Returns:
            ReconciledInvoice

        Raises:
            InvalidAmountError: If a non-negative field is negative
            AmountMismatchError: If a stated total disagrees with the computed one
            AmountOutOfRangeError: If a derived amount overflows currency precision
        """
        as_of = as_of_date or self.default_as_of()
        try:
            return self._reconcile(invoice, as_of)
        except AmountRangeError as exc:
            raise AmountOutOfRangeError(
                str(exc), invoice_number=invoice.header.invoice_number
            ) from exc
        except ReconciliationError as exc:
            if exc.invoice_number is None:
                exc.invoice_number = invoice.header.invoice_number
            raise

    def _reconcile(self, invoice: InvoiceInput, as_of: date) -> ReconciledInvoice:
        tolerance = self.config.amount_tolerance

        basic_value, freight_value = self._line_values(invoice.line)
        tax = self.tax.compute(invoice.tax_lines, basic_value, invoice.explicit_tax_rate)

        sub_total = to_money(basic_value + freight_value)
        self._check_stated("sub_total", invoice.sub_total, sub_total, tolerance)

        total_invoice_value = to_money(sub_total + tax.total_tax)
        self._check_stated("total_invoice_value", invoice.total_invoice_value, total_invoice_value, tolerance)

        terms_days, terms_warning = self.installments.resolve_payment_terms(
            invoice.payment_terms, invoice.payment_terms_days
        )
        schedule = self.installments.build_installments(
            total_invoice_value,
            terms_days,
            invoice.header.issue_date,
            invoice.installments,
            as_of,
            invoice.installment_split,
        )

        summary = self.deductions.compute_deductions(invoice.deductions)

        total_balance = schedule.total_balance
        net_collectible = max(total_balance - summary.total_deductions, ZERO)

        warnings = schedule.warnings
        if terms_warning is not None:
            warnings = (terms_warning,) + warnings

        logger.debug(
            "Reconciled %s as of %s: total=%s balance=%s overdue=%s",
            invoice.header.invoice_number,
            as_of,
            total_invoice_value,
            total_balance,
            schedule.over_due_total,
        )

        return ReconciledInvoice(
            header=invoice.header,
            line=invoice.line,
            tax_lines=invoice.tax_lines,
            deductions=invoice.deductions,
            as_of_date=as_of,
            total_tax=tax.total_tax,
            effective_tax_rate=tax.effective_rate,
            tax_type=self.tax.tax_type_label(invoice.tax_lines),
            basic_value=basic_value,
            freight_value=freight_value,
            sub_total=sub_total,
            total_invoice_value=total_invoice_value,
            installments=schedule.installments,
            total_balance=total_balance,
            not_due_total=schedule.not_due_total,
            over_due_total=schedule.over_due_total,
            total_deductions=summary.total_deductions,
            deductions_by_category=summary.by_category,
            net_collectible=net_collectible,
            deductions_exceed_balance=summary.total_deductions > total_balance,
            warnings=warnings,
        )

    def reconcile_outcome(self, invoice: InvoiceInput, as_of_date: date | None = None, index: int = 0) -> Outcome:
        """
        Reconcile one invoice, returning a ReconciliationFailure instead of raising.

        Args:
            invoice: Invoice input
            as_of_date: Classification date (defaults to today in the business timezone)
            index: Position of the invoice in its batch, for the failure report
        """
        try:
            return self.reconcile(invoice, as_of_date)
        except ReconciliationError as exc:
            logger.warning(
                "Invoice %s (#%d) not reconciled: %s", exc.invoice_number, index, exc
            )
            return ReconciliationFailure(
                index=index,
                invoice_number=exc.invoice_number,
                kind=exc.kind,
                message=str(exc),
                field=exc.field,
                stated=getattr(exc, "stated", None),
                computed=getattr(exc, "computed", None),
            )

    def reconcile_batch(
        self,
        records: Iterable[InvoiceInput | Mapping[str, Any]],
        as_of_date: date | None = None,
        loader: RecordLoader = InvoiceInput.model_validate,
    ) -> BatchResult:
        """
        Reconcile every invoice in a batch.

        Mappings are turned into InvoiceInput with loader first. A record that
        fails to load or reconcile becomes a ReconciliationFailure; the rest
        of the batch is unaffected.

        Args:
            records: Invoice inputs or raw mappings
            as_of_date: One classification date for the whole batch
            loader: Mapping -> InvoiceInput conversion

        Returns:
            BatchResult with outcomes in input order
        """
        as_of = as_of_date or self.default_as_of()
        outcomes: list[Outcome] = []

        for index, record in enumerate(records):
            if isinstance(record, InvoiceInput):
                invoice = record
            else:
                try:
                    invoice = loader(record)
                except ValueError as exc:
                    failure = ReconciliationFailure(
                        index=index,
                        invoice_number=_invoice_number_of(record),
                        kind=ReconciliationErrorKind.INVALID_INPUT,
                        message=str(exc),
                    )
                    logger.warning("Invoice #%d rejected: %s", index, failure.message)
                    outcomes.append(failure)
                    continue

            outcomes.append(self.reconcile_outcome(invoice, as_of, index))

        result = BatchResult(as_of_date=as_of, outcomes=tuple(outcomes))
        logger.info(
            "Reconciled batch as of %s: %d ok, %d failed",
            as_of,
            len(result.reconciled),
            result.excluded_count,
        )
        return result


def _invoice_number_of(record: Mapping[str, Any]) -> str | None:
    """Best-effort invoice number from a raw record, for failure reports."""
    header = record.get("header")
    if isinstance(header, Mapping) and header.get("invoice_number"):
        return str(header["invoice_number"])
    for key in ("invoice_number", "gst_tax_invoice_no", "internal_invoice_no"):
        if record.get(key):
            return str(record[key])
    return None
