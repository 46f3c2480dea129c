from __future__ import annotations

import datetime as dt

from app.core.config import settings

# Fixed-date public holidays (month, day). Courts do not sit on these.
FIXED_PUBLIC_HOLIDAYS: dict[tuple[int, int], str] = {
    (1, 1): "رأس السنة الميلادية",
    (3, 8): "عيد ثورة الثامن من آذار",
    (3, 21): "عيد الأم",
    (4, 17): "عيد الجلاء",
    (5, 1): "عيد العمال",
    (5, 6): "عيد الشهداء",
    (10, 6): "ذكرى حرب تشرين",
    (12, 25): "عيد الميلاد المجيد",
}

EXTRA_HOLIDAY_NAME = "عطلة رسمية"


def as_date(value: dt.date | dt.datetime) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    return value


def is_same_day(a: dt.date | dt.datetime, b: dt.date | dt.datetime) -> bool:
    return as_date(a) == as_date(b)


def is_before_today(value: dt.date | dt.datetime, today: dt.date | None = None) -> bool:
    """Strictly before the start of today (time of day ignored)."""
    return as_date(value) < (today or dt.date.today())


def is_weekend(value: dt.date | dt.datetime) -> bool:
    return as_date(value).weekday() in settings.weekend_days


def public_holiday(value: dt.date | dt.datetime) -> str | None:
    d = as_date(value)
    name = FIXED_PUBLIC_HOLIDAYS.get((d.month, d.day))
    if name:
        return name
    if d in settings.extra_public_holidays:
        return EXTRA_HOLIDAY_NAME
    return None


def non_working_day_warning(value: dt.date | dt.datetime) -> str | None:
    """Human-readable warning when `value` is a holiday or weekend, else None."""
    holiday = public_holiday(value)
    if holiday:
        return f"التاريخ المحدد يوافق عطلة رسمية ({holiday})."
    if is_weekend(value):
        return "التاريخ المحدد يوافق عطلة نهاية الأسبوع."
    return None
