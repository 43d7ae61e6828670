"""
Payment-terms label parsing.

Labels are free text typed by billing staff ("Net 30", "45 days from
invoice", "Immediate"). Known non-numeric labels come from a lookup table;
otherwise the first integer in the label is taken as the day count.
Anything else falls back to the configured default with a warning.
"""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Normalised label -> days
KNOWN_TERMS: dict[str, int] = {
    "immediate": 0,
    "due on receipt": 0,
    "on receipt": 0,
    "advance": 0,
    "100% advance": 0,
    "cash": 0,
    "cod": 0,
    "cash on delivery": 0,
    "against delivery": 0,
}

_FIRST_INTEGER = re.compile(r"(\d+)")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class PaymentTermsResolution:
    """Day count resolved from a payment-terms label."""

    days: int
    parsed: bool
    label: str | None = None


def _normalise(label: str) -> str:
    return _WHITESPACE.sub(" ", label.strip().lower())


def parse_payment_terms(label: str | None, default_days: int = 30) -> PaymentTermsResolution:
    """
    Resolve a payment-terms label to a day count.

    A missing or blank label means "not supplied" and resolves to the
    default with parsed=True. A label that matches nothing resolves to the
    default with parsed=False so the caller can attach a warning.

    Args:
        label: Free-text label such as "Net 30"
        default_days: Fallback day count

    Returns:
        PaymentTermsResolution
    """
    if label is None or not label.strip():
        return PaymentTermsResolution(days=default_days, parsed=True, label=label)

    normalised = _normalise(label)
    if normalised in KNOWN_TERMS:
        return PaymentTermsResolution(days=KNOWN_TERMS[normalised], parsed=True, label=label)

    match = _FIRST_INTEGER.search(normalised)
    if match is not None:
        return PaymentTermsResolution(days=int(match.group(1)), parsed=True, label=label)

    logger.warning(
        "Unparseable payment terms %r, using default of %d days", label, default_days
    )
    return PaymentTermsResolution(days=default_days, parsed=False, label=label)
