"""Fixed-precision decimal amounts.

Every monetary field is a Decimal quantized to 2 places, quantities to 3.
Binary floats are rejected outright.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated, Any, Iterable

from pydantic import AfterValidator, BeforeValidator

MONEY_SCALE = Decimal("0.01")
QUANTITY_SCALE = Decimal("0.001")
RATE_SCALE = Decimal("0.01")

ZERO = Decimal("0.00")

_CURRENCY_SYMBOLS = re.compile(r"[₹$€£]")
_SEPARATORS = re.compile(r"[,\s]")


def parse_amount(text: str) -> Decimal:
    """
    Parse a spreadsheet-style amount string.

    Accepts thousands separators ("1,23,456.50"), surrounding whitespace and
    a currency symbol. Empty strings are zero.

    Raises:
        ValueError: If the text is not a decimal number
    """
    cleaned = _SEPARATORS.sub("", _CURRENCY_SYMBOLS.sub("", text))
    if not cleaned:
        return Decimal(0)
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Not a decimal amount: {text!r}")
    if not value.is_finite():
        raise ValueError(f"Not a finite amount: {text!r}")
    return value


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise TypeError("Booleans are not amounts")
    if isinstance(value, float):
        raise TypeError(
            "Binary floats are not accepted for amounts. "
            "Pass a Decimal, int or str instead."
        )
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"Not a finite amount: {value}")
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        return parse_amount(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to an amount")


class AmountRangeError(ValueError):
    """A value has more digits than fixed-precision arithmetic can hold."""


def _quantize(value: Any, scale: Decimal) -> Decimal:
    amount = _as_decimal(value)
    try:
        return amount.quantize(scale, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise AmountRangeError(f"Amount out of range: {amount}")


def to_money(value: Any) -> Decimal:
    """Quantize a value to currency scale (2 places, half-up)."""
    return _quantize(value, MONEY_SCALE)


def to_quantity(value: Any) -> Decimal:
    """Quantize a value to quantity scale (3 places, half-up)."""
    return _quantize(value, QUANTITY_SCALE)


def to_rate(value: Any) -> Decimal:
    """Quantize a percentage rate to 2 places, half-up."""
    return _quantize(value, RATE_SCALE)


def money_sum(values: Iterable[Decimal]) -> Decimal:
    """Sum amounts, returning a currency-scale result (ZERO when empty)."""
    return to_money(sum(values, ZERO))


def _coerce(value: Any) -> Any:
    if value is None:
        return None
    try:
        return _as_decimal(value)
    except TypeError as exc:
        # pydantic only reports ValueError as a validation error
        raise ValueError(str(exc)) from exc


MoneyValue = Annotated[Decimal, BeforeValidator(_coerce), AfterValidator(to_money)]
QuantityValue = Annotated[Decimal, BeforeValidator(_coerce), AfterValidator(to_quantity)]
RateValue = Annotated[Decimal, BeforeValidator(_coerce), AfterValidator(to_rate)]
