# tests/test_business_rules.py
from datetime import date, datetime, time, timezone

from app.core.constants import TARGET_TIMEZONE
from app.services.business_rules import BusinessRulesEvaluator

NOW = datetime(2025, 9, 1, 8, 0, tzinfo=TARGET_TIMEZONE)


def test_monday_afternoon_is_valid():
    result = BusinessRulesEvaluator.evaluate(date(2025, 9, 8), time(14, 0), NOW)

    assert result.day_of_week == "Monday"
    assert result.hour == 14
    assert result.is_weekday is True
    assert result.is_business_hours is True
    assert result.is_future is True


def test_weekend_is_not_a_weekday_regardless_of_time():
    saturday = BusinessRulesEvaluator.evaluate(date(2025, 9, 6), time(10, 0), NOW)
    sunday = BusinessRulesEvaluator.evaluate(date(2025, 9, 7), time(0, 0), NOW)

    assert saturday.is_weekday is False
    assert sunday.is_weekday is False
    assert sunday.day_of_week == "Sunday"


def test_business_hours_window_is_half_open():
    assert BusinessRulesEvaluator.evaluate(date(2025, 9, 8), time(9, 0), NOW).is_business_hours
    assert BusinessRulesEvaluator.evaluate(date(2025, 9, 8), time(17, 59), NOW).is_business_hours
    assert not BusinessRulesEvaluator.evaluate(date(2025, 9, 8), time(8, 59), NOW).is_business_hours
    assert not BusinessRulesEvaluator.evaluate(date(2025, 9, 8), time(18, 0), NOW).is_business_hours


def test_future_is_strictly_after_now():
    exactly_now = BusinessRulesEvaluator.evaluate(date(2025, 9, 1), time(8, 0), NOW)
    one_minute_later = BusinessRulesEvaluator.evaluate(date(2025, 9, 1), time(8, 1), NOW)

    assert exactly_now.is_future is False
    assert one_minute_later.is_future is True


def test_future_comparison_uses_target_timezone():
    """
    09:00 IST is 03:30 UTC; a UTC clock at 04:00 already passed it.
    """
    utc_now = datetime(2025, 9, 8, 4, 0, tzinfo=timezone.utc)
    result = BusinessRulesEvaluator.evaluate(date(2025, 9, 8), time(9, 0), utc_now)

    assert result.is_future is False
