"""
Tax totals and effective tax rate.

The effective rate is inferred from the tax lines when the invoice does not
state one: (total tax / basic value) x 100, rounded to 2 places.
"""

from dataclasses import dataclass
from decimal import Decimal

from ledger.exceptions import InvalidAmountError
from ledger.models import TaxLines, TaxType
from ledger.money import ZERO, money_sum, to_rate

EXEMPT_LABEL = "EXEMPT"

_FIELD_FOR_TYPE = {
    TaxType.CGST: "cgst_output",
    TaxType.SGST: "sgst_output",
    TaxType.IGST: "igst_output",
    TaxType.UGST: "ugst_output",
    TaxType.TCS: "tcs",
}


@dataclass(frozen=True)
class TaxComputation:
    """Result of TaxBreakdown.compute."""

    total_tax: Decimal
    effective_rate: Decimal


class TaxBreakdown:
    """Computes total tax and effective rate for one invoice."""

    def compute(
        self,
        lines: TaxLines,
        basic_value: Decimal,
        explicit_rate: Decimal | None = None,
    ) -> TaxComputation:
        """
        Sum the tax lines and work out the effective rate.

        Args:
            lines: Output tax lines
            basic_value: Basic (pre-tax, pre-freight) value
            explicit_rate: Stated rate in percent, used as-is when basic_value > 0

        Returns:
            TaxComputation

        Raises:
            InvalidAmountError: If a tax line or the explicit rate is negative
        """
        for tax_type, amount in lines.by_type().items():
            if amount < 0:
                raise InvalidAmountError(_FIELD_FOR_TYPE[tax_type], amount)
        if explicit_rate is not None and explicit_rate < 0:
            raise InvalidAmountError("explicit_tax_rate", explicit_rate)

        total_tax = money_sum(lines.by_type().values())

        if basic_value <= 0:
            effective_rate = to_rate(ZERO)
        elif explicit_rate is not None:
            effective_rate = to_rate(explicit_rate)
        else:
            effective_rate = to_rate(total_tax / basic_value * 100)

        return TaxComputation(total_tax=total_tax, effective_rate=effective_rate)

    def tax_type_label(self, lines: TaxLines) -> str:
        """
        Label naming the tax components present on an invoice.

        Positive lines are joined with "+" in display order, e.g. "CGST+SGST".
        An invoice with no tax is "EXEMPT".
        """
        present = [tax_type.value for tax_type, amount in lines.by_type().items() if amount > 0]
        return "+".join(present) if present else EXEMPT_LABEL
