"""Deduction totals grouped by reporting category."""

from dataclasses import dataclass
from decimal import Decimal

from ledger.exceptions import InvalidAmountError
from ledger.models import DEDUCTION_CATEGORIES, DeductionCategory, DeductionSet
from ledger.money import ZERO, money_sum


@dataclass(frozen=True)
class DeductionSummary:
    """Result of DeductionLedger.compute_deductions."""

    total_deductions: Decimal
    by_category: dict[DeductionCategory, Decimal]


class DeductionLedger:
    """Rolls deduction lines into a total and per-category sums."""

    def compute_deductions(self, deductions: DeductionSet) -> DeductionSummary:
        """
        Sum deduction lines.

        Every category appears in by_category, zero when it has no lines.

        Raises:
            InvalidAmountError: If any line is negative
        """
        by_category = {category: ZERO for category in DeductionCategory}

        for name, amount in deductions.lines().items():
            if amount < 0:
                raise InvalidAmountError(name, amount)
            category = DEDUCTION_CATEGORIES[name]
            by_category[category] = by_category[category] + amount

        return DeductionSummary(
            total_deductions=money_sum(by_category.values()),
            by_category=by_category,
        )
