"""
Installment schedule and overdue classification.

Each invoice has three installment stages. Stage 1 falls due
payment-terms days after the issue date; later used stages cascade from
the previous stage's due date unless a date is supplied. Amounts default to
the invoice total split by percentage.

Classification is a hard cutover: an open balance is entirely not-due on or
before its due date and entirely overdue after it.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from ledger.config import LedgerConfig
from ledger.exceptions import InvalidAmountError
from ledger.models import (
    Installment,
    InstallmentOverride,
    ReconciliationWarning,
    WarningCode,
    sum_balances,
)
from ledger.money import ZERO, money_sum, to_money
from ledger.payment_terms import parse_payment_terms

logger = logging.getLogger(__name__)

STAGES = (1, 2, 3)


@dataclass(frozen=True)
class InstallmentSchedule:
    """Three reconciled stages plus any warnings raised building them."""

    installments: tuple[Installment, Installment, Installment]
    warnings: tuple[ReconciliationWarning, ...] = ()

    @property
    def total_balance(self) -> Decimal:
        return sum_balances(self.installments)[0]

    @property
    def not_due_total(self) -> Decimal:
        return sum_balances(self.installments)[1]

    @property
    def over_due_total(self) -> Decimal:
        return sum_balances(self.installments)[2]


class InstallmentLedger:
    """Builds and updates installment stages."""

    def __init__(self, config: LedgerConfig | None = None):
        self.config = config or LedgerConfig()

    def resolve_payment_terms(
        self,
        label: str | None,
        days: int | None = None,
    ) -> tuple[int, ReconciliationWarning | None]:
        """
        Day count for the first due date.

        An explicit day count wins over the label. An unparseable label
        falls back to the configured default and yields a warning.
        """
        if days is not None:
            return days, None

        resolution = parse_payment_terms(label, self.config.default_payment_terms_days)
        if resolution.parsed:
            return resolution.days, None

        return resolution.days, ReconciliationWarning(
            code=WarningCode.UNPARSEABLE_PAYMENT_TERMS,
            message=(
                f"Payment terms {label!r} could not be parsed; "
                f"assumed {resolution.days} days"
            ),
        )

    def default_amounts(
        self,
        total_invoice_value: Decimal,
        split: tuple[Decimal, Decimal, Decimal],
    ) -> tuple[Decimal, Decimal, Decimal]:
        """
        Proportional share of the total per stage.

        The last used stage takes the rounding remainder so the shares
        always sum to the total exactly.
        """
        used = [index for index, pct in enumerate(split) if pct > 0]
        shares = [ZERO, ZERO, ZERO]
        if not used:
            return ZERO, ZERO, ZERO

        for index in used[:-1]:
            shares[index] = to_money(total_invoice_value * split[index] / 100)
        shares[used[-1]] = to_money(total_invoice_value - sum(shares, ZERO))
        return shares[0], shares[1], shares[2]

    def classify(
        self,
        stage: int,
        due_date: date | None,
        due_amount: Decimal,
        received_amount: Decimal,
        receipt_date: date | None,
        as_of_date: date,
    ) -> Installment:
        """
        Derive balance, buckets and days-to-receipt for one stage.

        Raises:
            InvalidAmountError: If an amount is negative
        """
        if due_amount < 0:
            raise InvalidAmountError(f"installment_{stage}.due_amount", due_amount)
        if received_amount < 0:
            raise InvalidAmountError(f"installment_{stage}.received_amount", received_amount)

        balance = to_money(max(due_amount - received_amount, ZERO))
        overpayment = to_money(max(received_amount - due_amount, ZERO))

        not_due = over_due = ZERO
        if balance > 0:
            if due_date is None or as_of_date <= due_date:
                not_due = balance
            else:
                over_due = balance

        days_to_receipt = None
        if receipt_date is not None and due_date is not None:
            days_to_receipt = (receipt_date - due_date).days

        return Installment(
            stage=stage,
            due_date=due_date,
            due_amount=due_amount,
            received_amount=received_amount,
            receipt_date=receipt_date,
            balance=balance,
            not_due=not_due,
            over_due=over_due,
            overpayment=overpayment,
            days_to_receipt=days_to_receipt,
        )

    def build_installments(
        self,
        total_invoice_value: Decimal,
        payment_terms_days: int,
        issue_date: date,
        overrides: Iterable[InstallmentOverride] = (),
        as_of_date: date | None = None,
        split: tuple[Decimal, Decimal, Decimal] = (Decimal(100), Decimal(0), Decimal(0)),
    ) -> InstallmentSchedule:
        """
        Build the three installment stages for an invoice.

        Args:
            total_invoice_value: Computed invoice total
            payment_terms_days: Days between consecutive default due dates
            issue_date: Invoice date
            overrides: Supplied per-stage values
            as_of_date: Classification date (defaults to issue_date)
            split: Percentage of the total per stage

        Returns:
            InstallmentSchedule with stages 1, 2, 3

        Raises:
            InvalidAmountError: If a supplied amount is negative
        """
        as_of = as_of_date or issue_date
        by_stage = {override.stage: override for override in overrides}
        shares = self.default_amounts(total_invoice_value, split)

        installments = []
        warnings = []
        previous_due = issue_date

        # Stage order matters: defaults cascade from the previous due date
        for stage in STAGES:
            override = by_stage.get(stage)
            due_amount = shares[stage - 1]
            received_amount = ZERO
            receipt_date = None
            due_date = None

            if override is not None:
                if override.due_amount is not None:
                    due_amount = override.due_amount
                if override.received_amount is not None:
                    received_amount = override.received_amount
                receipt_date = override.receipt_date
                due_date = override.due_date

            if due_date is None and due_amount > 0:
                due_date = previous_due + timedelta(days=payment_terms_days)

            installment = self.classify(
                stage, due_date, due_amount, received_amount, receipt_date, as_of
            )
            installments.append(installment)

            if installment.due_date is not None:
                previous_due = installment.due_date

            if installment.overpayment > 0:
                logger.debug(
                    "Stage %d overpaid by %s", stage, installment.overpayment
                )
                warnings.append(ReconciliationWarning(
                    code=WarningCode.OVERPAYMENT,
                    message=f"Stage {stage} received {installment.overpayment} more than due",
                    stage=stage,
                ))

        scheduled = money_sum(i.due_amount for i in installments)
        if abs(scheduled - total_invoice_value) > self.config.amount_tolerance:
            warnings.append(ReconciliationWarning(
                code=WarningCode.SCHEDULE_MISMATCH,
                message=(
                    f"Installments schedule {scheduled} against an invoice "
                    f"total of {total_invoice_value}"
                ),
            ))

        return InstallmentSchedule(
            installments=(installments[0], installments[1], installments[2]),
            warnings=tuple(warnings),
        )

    def record_payment(
        self,
        installment: Installment,
        amount: Decimal,
        receipt_date: date,
        as_of_date: date,
    ) -> Installment:
        """
        Record a receipt against a stage.

        Receipts are cumulative and the receipt date only moves forward.
        The installment is re-classified as of as_of_date.

        Raises:
            InvalidAmountError: If amount is negative
        """
        if amount < 0:
            raise InvalidAmountError(f"installment_{installment.stage}.payment", amount)

        latest = receipt_date
        if installment.receipt_date is not None and installment.receipt_date > receipt_date:
            latest = installment.receipt_date

        return self.classify(
            installment.stage,
            installment.due_date,
            installment.due_amount,
            to_money(installment.received_amount + amount),
            latest,
            as_of_date,
        )
