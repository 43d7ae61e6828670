"""Ledger configuration."""

from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator


class LedgerConfig(BaseModel):
    """
    Reconciliation and reporting configuration.

    Tolerances are in currency units. Day counts are calendar days.
    """

    # Payment terms
    default_payment_terms_days: int = Field(
        default=30,
        description="Days to the first due date when payment terms are missing or unparseable",
        ge=0,
        le=3650,
    )

    # Tolerances
    amount_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        description="Allowed gap between stated and computed invoice totals",
        ge=0,
    )
    line_value_tolerance: Decimal = Field(
        default=Decimal("1.00"),
        description="Allowed gap between stated basic value and quantity x rate",
        ge=0,
    )

    # As-of date
    business_timezone: str = Field(
        default="Asia/Kolkata",
        description="IANA timezone whose calendar date is the default as-of date",
    )

    # Reporting
    top_n: int = Field(
        default=10,
        description="Rows kept in top-N dashboard views",
        ge=1,
        le=1000,
    )
    trend_months: int = Field(
        default=12,
        description="Months kept in the monthly trend",
        ge=1,
        le=120,
    )
    unknown_label: str = Field(
        default="Unknown",
        description="Group key used when a dimension value is missing",
        min_length=1,
    )

    model_config = {"frozen": True}

    @field_validator("business_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject names that are not IANA timezones."""
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value}")
        return value
