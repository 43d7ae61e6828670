"""Tests for utils/timezone.py - UTC clock and business dates."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from utils.timezone import business_today, now_utc, to_local


class TestNowUtc:
    """Tests for now_utc()."""

    def test_returns_timezone_aware(self):
        """Result must have tzinfo set (not naive)."""
        assert now_utc().tzinfo is not None

    def test_is_utc(self):
        """Result timezone must be specifically UTC."""
        assert now_utc().tzinfo == timezone.utc


class TestToLocal:
    """Tests for to_local()."""

    def test_converts_correctly(self):
        """UTC 18:00 should become Kolkata 23:30."""
        utc_time = datetime(2025, 1, 1, 18, 0, 0, tzinfo=timezone.utc)
        result = to_local(utc_time, "Asia/Kolkata")
        assert (result.hour, result.minute) == (23, 30)
        assert result.tzinfo == ZoneInfo("Asia/Kolkata")

    def test_raises_on_naive(self):
        """Naive datetime must raise ValueError."""
        with pytest.raises(ValueError, match="naive"):
            to_local(datetime(2025, 1, 1, 12, 0, 0), "Asia/Kolkata")

    def test_raises_on_unknown_timezone(self):
        """Unknown zone names are rejected."""
        utc_time = datetime(2025, 1, 1, tzinfo=timezone.utc)
        with pytest.raises(ValueError, match="Unknown timezone"):
            to_local(utc_time, "Mars/Olympus_Mons")


class TestBusinessToday:
    """Tests for business_today()."""

    def test_date_rolls_over_in_business_timezone(self):
        """20:00 UTC on Jan 31 is already Feb 1 in Kolkata."""
        at = datetime(2025, 1, 31, 20, 0, tzinfo=timezone.utc)
        assert business_today("Asia/Kolkata", at=at) == date(2025, 2, 1)

    def test_same_day_before_rollover(self):
        """10:00 UTC is still the same calendar day in Kolkata."""
        at = datetime(2025, 1, 31, 10, 0, tzinfo=timezone.utc)
        assert business_today("Asia/Kolkata", at=at) == date(2025, 1, 31)

    def test_defaults_to_now(self):
        """Without an instant, returns a date."""
        assert isinstance(business_today("UTC"), date)
