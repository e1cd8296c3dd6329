"""Поиск свободных слотов для записи"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from config import DEFAULT_SERVICE_DURATION, MINUTES_IN_DAY, SLOT_STEP_MINUTES
from database.models import Barber, Booking, EffectiveSchedule, TimeRange
from database.repositories.barber_repository import BarberRepository
from database.repositories.booking_repository import BookingRepository
from database.repositories.shop_repository import ShopRepository
from services.schedule_service import resolve_schedule
from utils.datetime_utils import (
    current_business_time,
    minutes_to_time,
    previous_date,
    time_to_minutes,
)


@dataclass
class BarberDay:
    """Расписание и занятость мастера на дату и на предыдущий день"""

    barber_id: int
    today: EffectiveSchedule
    yesterday: EffectiveSchedule
    busy_today: List[TimeRange] = field(default_factory=list)
    busy_yesterday: List[TimeRange] = field(default_factory=list)


def is_barber_free(
    schedule: EffectiveSchedule,
    start_minutes: int,
    duration_with_buffer: int,
    busy_ranges: Iterable[TimeRange],
) -> bool:
    """Можно ли поставить запись [start, start + duration) в расписание"""
    end_minutes = start_minutes + duration_with_buffer

    if not schedule.is_open:
        return False

    # Уборка после клиента тоже должна уложиться в смену
    if start_minutes < schedule.start or end_minutes > schedule.end:
        return False

    if any(br.overlaps(start_minutes, end_minutes) for br in schedule.breaks):
        return False

    return not any(r.overlaps(start_minutes, end_minutes) for r in busy_ranges)


def barber_fits(day: BarberDay, time_minutes: int, duration_with_buffer: int) -> bool:
    """Влезает ли запись в сегодняшнюю смену или в ночной хвост вчерашней"""
    if day.today.is_open:
        busy = day.busy_today + [r.shifted(-MINUTES_IN_DAY) for r in day.busy_yesterday]
        if is_barber_free(day.today, time_minutes, duration_with_buffer, busy):
            return True

    if day.yesterday.is_open and day.yesterday.is_overnight:
        busy = day.busy_yesterday + [r.shifted(MINUTES_IN_DAY) for r in day.busy_today]
        if is_barber_free(
            day.yesterday, time_minutes + MINUTES_IN_DAY, duration_with_buffer, busy
        ):
            return True

    return False


def booking_window(days: List[BarberDay]) -> Tuple[int, int]:
    """Общее окно поиска: объединение смен + хвосты ночных смен вчера"""
    min_start, max_end = MINUTES_IN_DAY, 0

    for day in days:
        if day.today.is_open:
            min_start = min(min_start, day.today.start)
            max_end = max(max_end, day.today.end)

        if day.yesterday.is_open and day.yesterday.is_overnight:
            # Хвост вчерашней смены начинается в 00:00
            min_start = 0
            max_end = max(max_end, day.yesterday.end - MINUTES_IN_DAY)

    return min_start, max_end


def find_available_slots(
    days: List[BarberDay],
    duration: int,
    buffer_time: int = 0,
    earliest: Optional[int] = None,
) -> List[str]:
    """Свободные времена начала (шаг 15 минут)

    Если точка сетки занята, проверяются следующие 14 минут и
    предлагается первая свободная минута.
    """
    min_start, max_end = booking_window(days)
    total = duration + buffer_time

    def available_at(time_minutes: int) -> bool:
        return any(barber_fits(day, time_minutes, total) for day in days)

    current = min_start if earliest is None else max(min_start, earliest)
    slots = []

    while current + duration <= max_end:
        if available_at(current):
            slots.append(minutes_to_time(current))
        else:
            for offset in range(1, SLOT_STEP_MINUTES):
                recovery = current + offset
                if recovery + duration > max_end:
                    break
                if available_at(recovery):
                    slots.append(minutes_to_time(recovery))
                    break

        current += SLOT_STEP_MINUTES

    return slots


def busy_ranges(bookings: Iterable[Booking], date_str: str, buffer_time: int) -> List[TimeRange]:
    """Занятые интервалы на дату (с учётом буфера после записи)"""
    ranges = []
    for b in bookings:
        if b.date != date_str:
            continue
        start, end = booking_minutes(b)
        ranges.append(TimeRange(start, end + buffer_time))
    return ranges


def booking_minutes(booking: Booking) -> Tuple[int, int]:
    """Начало и конец записи в минутах (запись через полночь - конец > 1440)"""
    start = time_to_minutes(booking.start_time)
    end = time_to_minutes(booking.end_time)
    if end < start:
        end += MINUTES_IN_DAY
    return start, end


def build_barber_day(
    barber: Barber, date_str: str, bookings: List[Booking], buffer_time: int
) -> BarberDay:
    """Собрать BarberDay из настроек мастера и его записей"""
    prev = previous_date(date_str)
    own = [b for b in bookings if b.barber_id == barber.id]
    return BarberDay(
        barber_id=barber.id,
        today=resolve_schedule(barber, date_str),
        yesterday=resolve_schedule(barber, prev),
        busy_today=busy_ranges(own, date_str, buffer_time),
        busy_yesterday=busy_ranges(own, prev, buffer_time),
    )


class SlotService:
    """Сервис свободных слотов салона"""

    @staticmethod
    async def get_available_slots(
        shop_id: int,
        date_str: str,
        duration: Optional[int] = None,
        barber_id=None,
    ) -> List[str]:
        """Свободные слоты салона (или одного мастера) на дату"""
        shop = await ShopRepository.get_shop(shop_id)
        if not shop:
            logging.warning(f"Shop {shop_id} not found")
            return []

        duration = int(duration) if duration else DEFAULT_SERVICE_DURATION

        if barber_id and barber_id != "any":
            barber = await BarberRepository.get_barber(int(barber_id))
            barbers = [barber] if barber else []
        else:
            barbers = await BarberRepository.get_shop_barbers(shop_id, available_only=True)

        if not barbers:
            return []

        now = current_business_time()
        if date_str < now.date:
            return []

        earliest = None
        if date_str == now.date:
            earliest = now.minutes + shop.min_booking_notice

        bookings = await BookingRepository.get_active_bookings(
            [b.id for b in barbers], [date_str, previous_date(date_str)]
        )
        days = [build_barber_day(b, date_str, bookings, shop.buffer_time) for b in barbers]

        return find_available_slots(days, duration, shop.buffer_time, earliest)
