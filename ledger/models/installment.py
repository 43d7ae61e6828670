"""Installment stage models.

An invoice is paid in up to three staggered stages. Each stage carries its
own due date and receipts; its balance is split into a not-due or an
overdue bucket depending on the as-of date.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from ledger.money import MoneyValue, ZERO


class InstallmentState(str, Enum):
    """Installment lifecycle. SETTLED is terminal."""

    UNUSED = "unused"
    SCHEDULED = "scheduled"
    PARTIALLY_PAID = "partially_paid"
    SETTLED = "settled"


class DueStatus(str, Enum):
    """Classification of an open balance against the as-of date."""

    NOT_DUE = "not_due"
    OVERDUE = "overdue"


class Installment(BaseModel):
    """One reconciled installment stage."""

    stage: int = Field(..., ge=1, le=3)
    due_date: date | None = None
    due_amount: MoneyValue = ZERO
    received_amount: MoneyValue = ZERO
    receipt_date: date | None = None
    balance: MoneyValue = ZERO
    not_due: MoneyValue = ZERO
    over_due: MoneyValue = ZERO
    overpayment: MoneyValue = ZERO
    days_to_receipt: int | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_balance_conservation(self) -> "Installment":
        """not_due + over_due must equal the balance; both zero when settled."""
        if self.balance < 0:
            raise ValueError("Installment balance must not be negative")
        if self.not_due < 0 or self.over_due < 0:
            raise ValueError("Installment buckets must not be negative")
        if self.not_due + self.over_due != self.balance:
            raise ValueError(
                f"Stage {self.stage}: not_due ({self.not_due}) + over_due ({self.over_due}) "
                f"!= balance ({self.balance})"
            )
        return self

    @property
    def state(self) -> InstallmentState:
        """Lifecycle state derived from amounts."""
        if self.due_amount == 0 and self.received_amount == 0:
            return InstallmentState.UNUSED
        if self.received_amount >= self.due_amount:
            return InstallmentState.SETTLED
        if self.received_amount > 0:
            return InstallmentState.PARTIALLY_PAID
        return InstallmentState.SCHEDULED

    @property
    def due_status(self) -> DueStatus | None:
        """NOT_DUE or OVERDUE for open stages, None otherwise."""
        if self.over_due > 0:
            return DueStatus.OVERDUE
        if self.not_due > 0:
            return DueStatus.NOT_DUE
        return None

    @property
    def is_used(self) -> bool:
        return self.state != InstallmentState.UNUSED

    def days_past_due(self, as_of_date: date) -> int:
        """Days since the due date; zero when not yet due or undated."""
        if self.due_date is None:
            return 0
        return max((as_of_date - self.due_date).days, 0)


def unused_installment(stage: int) -> Installment:
    """A zeroed-out stage."""
    return Installment(stage=stage)


def sum_balances(installments: tuple[Installment, ...]) -> tuple[Decimal, Decimal, Decimal]:
    """(total_balance, not_due_total, over_due_total) over the stages."""
    balance = sum((i.balance for i in installments), ZERO)
    not_due = sum((i.not_due for i in installments), ZERO)
    over_due = sum((i.over_due for i in installments), ZERO)
    return balance, not_due, over_due
