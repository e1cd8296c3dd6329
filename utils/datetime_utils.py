"""Утилиты для работы с датами и временем

Время внутри дня хранится как минуты от полуночи (0..1440). Конец смены
может быть больше 1440, если смена переходит через полночь.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

import pytz

from config import BUSINESS_UTC_OFFSET_MINUTES, DAY_NAMES, MINUTES_IN_DAY

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class TimeFormatError(ValueError):
    """Строка времени не в формате HH:mm"""


@dataclass(frozen=True)
class BusinessTime:
    """Текущие дата и время в бизнес-таймзоне"""

    date: str
    minutes: int


def time_to_minutes(time_str: Optional[str]) -> int:
    """Перевод "HH:mm" в минуты от полуночи

    Пустое значение трактуется как полночь (0).

    Raises:
        TimeFormatError: непустая строка не в формате HH:mm
    """
    if not time_str:
        return 0

    match = _TIME_RE.match(time_str.strip())
    if not match:
        raise TimeFormatError(f"Invalid time value: {time_str!r}")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours >= 24 or minutes >= 60:
        raise TimeFormatError(f"Invalid time value: {time_str!r}")

    return hours * 60 + minutes


def minutes_to_time(total_minutes: int) -> str:
    """Перевод минут в "HH:mm" (по модулю суток, 1560 -> "02:00")"""
    normalized = total_minutes % MINUTES_IN_DAY
    return f"{normalized // 60:02d}:{normalized % 60:02d}"


def parse_date(date_str: str) -> date:
    """Парсинг YYYY-MM-DD как календарной даты (без таймзоны)"""
    return datetime.strptime(date_str, "%Y-%m-%d").date()


def day_of_week(date_str: str) -> str:
    """Название дня недели для YYYY-MM-DD ("2024-06-03" -> "Monday")"""
    return DAY_NAMES[parse_date(date_str).weekday()]


def previous_date(date_str: str) -> str:
    """Предыдущий календарный день"""
    return (parse_date(date_str) - timedelta(days=1)).isoformat()


def business_now() -> datetime:
    """Текущее время со сдвигом на бизнес-таймзону

    Считается от UTC, поэтому не зависит от таймзоны хоста.
    """
    return datetime.now(pytz.UTC) + timedelta(minutes=BUSINESS_UTC_OFFSET_MINUTES)


def current_business_time() -> BusinessTime:
    """Текущая бизнес-дата и минуты от полуночи"""
    shifted = business_now()
    return BusinessTime(
        date=shifted.strftime("%Y-%m-%d"),
        minutes=shifted.hour * 60 + shifted.minute,
    )


def week_start(date_str: str) -> str:
    """Понедельник недели, в которую попадает дата"""
    day = parse_date(date_str)
    return (day - timedelta(days=day.weekday())).isoformat()


def current_week_start() -> str:
    """Понедельник текущей бизнес-недели (граница для расчётов)"""
    return week_start(current_business_time().date)


def month_bounds(date_str: str) -> tuple:
    """Первый и последний день месяца даты"""
    day = parse_date(date_str)
    first = day.replace(day=1)
    next_month = (first + timedelta(days=32)).replace(day=1)
    return first.isoformat(), (next_month - timedelta(days=1)).isoformat()
