import calendar
from datetime import datetime, date, timedelta
from typing import Any, Optional

import pytz

DEFAULT_TZ_NAME = "UTC"


def get_timezone(name: str = DEFAULT_TZ_NAME):
    """Часовой пояс pytz по имени IANA"""
    return pytz.timezone(name)


def now_in_timezone(tz_name: str = DEFAULT_TZ_NAME) -> datetime:
    return datetime.now(get_timezone(tz_name))


def to_day(value: Any, tz=None) -> Optional[date]:
    """
    Приведение значения к календарному дню в заданном часовом поясе.

    date и строки YYYY-MM-DD уже являются днём. Aware datetime переводится
    в tz, naive datetime считается локальным временем tz. Всё остальное
    возвращает None.
    """
    tz = tz or pytz.utc

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()

    if isinstance(value, date):
        return value

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        return None

    return to_day(parsed, tz)


def day_key(day: date) -> str:
    return day.isoformat()


def start_of_week(day: date) -> date:
    # Неделя начинается с воскресенья
    return day - timedelta(days=(day.weekday() + 1) % 7)


def end_of_week(day: date) -> date:
    return start_of_week(day) + timedelta(days=6)


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def end_of_month(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def days_between(start: date, end: date) -> int:
    """Количество дней в интервале включительно"""
    return (end - start).days + 1


def iter_days(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
