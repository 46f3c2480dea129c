import datetime as dt

from app.core.config import settings
from app.services import court_calendar


def test_weekend_is_friday_and_saturday():
    assert court_calendar.is_weekend(dt.date(2024, 5, 10))  # Friday
    assert court_calendar.is_weekend(dt.datetime(2024, 5, 11, 9, 30))  # Saturday
    assert not court_calendar.is_weekend(dt.date(2024, 5, 12))  # Sunday


def test_fixed_public_holidays():
    assert court_calendar.public_holiday(dt.date(2024, 4, 17)) == "عيد الجلاء"
    assert court_calendar.public_holiday(dt.date(2024, 4, 18)) is None


def test_extra_public_holidays_from_settings(monkeypatch):
    eid = dt.date(2024, 4, 10)
    monkeypatch.setattr(settings, "extra_public_holidays", [eid])
    assert court_calendar.public_holiday(eid) == court_calendar.EXTRA_HOLIDAY_NAME
    assert court_calendar.non_working_day_warning(dt.datetime(2024, 4, 10, 8)) is not None


def test_warning_prefers_holiday_name():
    # 2024-05-01 is a Wednesday
    warning = court_calendar.non_working_day_warning(dt.date(2024, 5, 1))
    assert "عيد العمال" in warning
    assert court_calendar.non_working_day_warning(dt.date(2024, 5, 12)) is None
    assert court_calendar.non_working_day_warning(dt.date(2024, 5, 11)) == "التاريخ المحدد يوافق عطلة نهاية الأسبوع."


def test_day_comparisons_ignore_time_of_day():
    assert court_calendar.is_same_day(dt.datetime(2024, 5, 10, 23, 59), dt.date(2024, 5, 10))
    today = dt.date(2024, 5, 10)
    assert not court_calendar.is_before_today(dt.datetime(2024, 5, 10, 0, 0), today)
    assert court_calendar.is_before_today(dt.datetime(2024, 5, 9, 23, 59), today)
