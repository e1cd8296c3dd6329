"""Определение рабочего расписания мастера на дату

Приоритет источников (первое совпадение, без смешивания уровней):
особые часы на дату > расписание по дню недели > настройки по умолчанию.

Если конец смены раньше начала (22:00-02:00), к концу прибавляются сутки,
чтобы окно было непрерывным возрастающим интервалом. Перерывы не
сдвигаются: считается, что они в тот же календарный день, что и начало смены.
"""

from typing import List

from config import MINUTES_IN_DAY
from database.models import Barber, BreakPeriod, EffectiveSchedule, TimeRange
from utils.datetime_utils import day_of_week, time_to_minutes


def breaks_to_ranges(breaks: List[BreakPeriod]) -> List[TimeRange]:
    """Перерывы "HH:mm" -> интервалы в минутах"""
    return [
        TimeRange(time_to_minutes(br.start_time), time_to_minutes(br.end_time))
        for br in breaks or []
    ]


def _normalized(is_open: bool, start_hour, end_hour, breaks: List[TimeRange]) -> EffectiveSchedule:
    start = time_to_minutes(start_hour)
    end = time_to_minutes(end_hour)
    if end < start:
        end += MINUTES_IN_DAY
    return EffectiveSchedule(is_open=bool(is_open), start=start, end=end, breaks=breaks)


def resolve_schedule(barber: Barber, date_str: str) -> EffectiveSchedule:
    """Расписание мастера на дату

    Каждый вызов считает результат заново: настройки мастера могут
    поменяться между запросами.
    """
    special = barber.find_special(date_str)
    if special:
        # Перерывы для особых дней не поддерживаются
        return _normalized(special.is_open, special.start_hour, special.end_hour, [])

    weekly = barber.find_weekly(day_of_week(date_str))
    if weekly:
        return _normalized(
            weekly.is_open, weekly.start_hour, weekly.end_hour, breaks_to_ranges(weekly.breaks)
        )

    return _normalized(
        barber.is_available, barber.start_hour, barber.end_hour, breaks_to_ranges(barber.breaks)
    )
