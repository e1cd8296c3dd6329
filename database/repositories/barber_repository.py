"""Репозиторий для работы с мастерами и их расписанием"""

import json
import logging
from typing import Callable, List, Optional

import aiosqlite

from config import DATABASE_PATH, DAY_NAMES
from database.base_repository import BaseRepository
from database.models import Barber, BreakPeriod, SpecialHours, WeeklyOverride
from utils.datetime_utils import parse_date, time_to_minutes


def _validate_times(*values: Optional[str]):
    """Проверка формата HH:mm при сохранении (пустое значение допустимо)"""
    for value in values:
        time_to_minutes(value)


def _validate_breaks(breaks: List[BreakPeriod]):
    for br in breaks:
        _validate_times(br.start_time, br.end_time)


class BarberRepository(BaseRepository):
    """Репозиторий мастеров

    На каждый день недели допускается не больше одного переопределения,
    на каждую дату - не больше одной записи особых часов.
    """

    @staticmethod
    def _row_to_barber(row) -> Barber:
        return Barber(
            id=row["id"],
            shop_id=row["shop_id"],
            name=row["name"],
            avatar=row["avatar"],
            start_hour=row["start_hour"],
            end_hour=row["end_hour"],
            breaks=[BreakPeriod.from_dict(b) for b in json.loads(row["breaks"] or "[]")],
            weekly_schedule=[
                WeeklyOverride.from_dict(w) for w in json.loads(row["weekly_schedule"] or "[]")
            ],
            special_hours=[
                SpecialHours.from_dict(s) for s in json.loads(row["special_hours"] or "[]")
            ],
            is_available=bool(row["is_available"]),
        )

    @staticmethod
    def _check_unique(barber: Barber):
        days = [w.day for w in barber.weekly_schedule]
        if len(days) != len(set(days)):
            raise ValueError("Only one weekly override per weekday is allowed")
        dates = [s.date for s in barber.special_hours]
        if len(dates) != len(set(dates)):
            raise ValueError("Only one special hours entry per date is allowed")

    @staticmethod
    async def create_barber(barber: Barber) -> int:
        """Создать мастера"""
        BarberRepository._check_unique(barber)
        _validate_times(barber.start_hour, barber.end_hour)
        _validate_breaks(barber.breaks)
        for weekly in barber.weekly_schedule:
            if weekly.day not in DAY_NAMES:
                raise ValueError(f"Unknown weekday: {weekly.day}")
            _validate_times(weekly.start_hour, weekly.end_hour)
            _validate_breaks(weekly.breaks)
        for special in barber.special_hours:
            parse_date(special.date)
            _validate_times(special.start_hour, special.end_hour)

        barber_id = await BarberRepository._insert(
            """INSERT INTO barbers
            (shop_id, name, avatar, start_hour, end_hour, breaks,
             weekly_schedule, special_hours, is_available)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                barber.shop_id,
                barber.name,
                barber.avatar,
                barber.start_hour,
                barber.end_hour,
                json.dumps([b.to_dict() for b in barber.breaks]),
                json.dumps([w.to_dict() for w in barber.weekly_schedule]),
                json.dumps([s.to_dict() for s in barber.special_hours]),
                barber.is_available,
            ),
        )
        logging.info(f"Barber {barber_id} created for shop {barber.shop_id}")
        return barber_id

    @staticmethod
    async def get_barber(barber_id: int) -> Optional[Barber]:
        """Получить мастера по ID"""
        try:
            row = await BarberRepository._execute_query(
                "SELECT * FROM barbers WHERE id=?", (barber_id,), fetch_one=True
            )
            return BarberRepository._row_to_barber(row) if row else None
        except Exception as e:
            logging.error(f"Error getting barber {barber_id}: {e}")
            return None

    @staticmethod
    async def get_shop_barbers(shop_id: int, available_only: bool = False) -> List[Barber]:
        """Мастера салона"""
        query = "SELECT * FROM barbers WHERE shop_id=?"
        if available_only:
            query += " AND is_available=1"
        query += " ORDER BY id"
        try:
            rows = await BarberRepository._execute_query(query, (shop_id,), fetch_all=True)
            return [BarberRepository._row_to_barber(row) for row in rows or []]
        except Exception as e:
            logging.error(f"Error getting barbers for shop {shop_id}: {e}")
            return []

    @staticmethod
    async def update_default_hours(
        barber_id: int,
        start_hour: str,
        end_hour: str,
        breaks: Optional[List[BreakPeriod]] = None,
    ) -> bool:
        """Обновить часы и перерывы по умолчанию"""
        _validate_times(start_hour, end_hour)
        if breaks is not None:
            _validate_breaks(breaks)
            rowcount = await BarberRepository._execute_query(
                "UPDATE barbers SET start_hour=?, end_hour=?, breaks=? WHERE id=?",
                (start_hour, end_hour, json.dumps([b.to_dict() for b in breaks]), barber_id),
                commit=True,
            )
        else:
            rowcount = await BarberRepository._execute_query(
                "UPDATE barbers SET start_hour=?, end_hour=? WHERE id=?",
                (start_hour, end_hour, barber_id),
                commit=True,
            )
        return rowcount > 0

    @staticmethod
    async def set_availability(barber_id: int, is_available: bool) -> bool:
        """Включить/выключить мастера (мягкое удаление)"""
        rowcount = await BarberRepository._execute_query(
            "UPDATE barbers SET is_available=? WHERE id=?",
            (is_available, barber_id),
            commit=True,
        )
        if rowcount:
            logging.info(f"Barber {barber_id} availability set to {is_available}")
        return rowcount > 0

    @staticmethod
    async def _update_json_column(
        barber_id: int, column: str, mutate: Callable[[list], list]
    ) -> bool:
        """Прочитать JSON-колонку, изменить и записать в одной транзакции"""
        async with aiosqlite.connect(DATABASE_PATH) as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                async with db.execute(
                    f"SELECT {column} FROM barbers WHERE id=?", (barber_id,)
                ) as cursor:
                    row = await cursor.fetchone()

                if not row:
                    await db.rollback()
                    logging.warning(f"Barber {barber_id} not found")
                    return False

                entries = mutate(json.loads(row[0] or "[]"))
                await db.execute(
                    f"UPDATE barbers SET {column}=? WHERE id=?",
                    (json.dumps(entries), barber_id),
                )
                await db.commit()
                return True
            except Exception:
                await db.rollback()
                raise

    @staticmethod
    async def set_weekly_override(barber_id: int, override: WeeklyOverride) -> bool:
        """Добавить или заменить переопределение на день недели"""
        if override.day not in DAY_NAMES:
            raise ValueError(f"Unknown weekday: {override.day}")
        _validate_times(override.start_hour, override.end_hour)
        _validate_breaks(override.breaks)

        def mutate(entries: list) -> list:
            kept = [e for e in entries if e.get("day") != override.day]
            kept.append(override.to_dict())
            kept.sort(key=lambda e: DAY_NAMES.index(e["day"]))
            return kept

        return await BarberRepository._update_json_column(barber_id, "weekly_schedule", mutate)

    @staticmethod
    async def remove_weekly_override(barber_id: int, day: str) -> bool:
        """Удалить переопределение дня недели"""
        return await BarberRepository._update_json_column(
            barber_id,
            "weekly_schedule",
            lambda entries: [e for e in entries if e.get("day") != day],
        )

    @staticmethod
    async def set_special_hours(barber_id: int, special: SpecialHours) -> bool:
        """Добавить или заменить особые часы на дату"""
        parse_date(special.date)
        _validate_times(special.start_hour, special.end_hour)

        def mutate(entries: list) -> list:
            kept = [e for e in entries if e.get("date") != special.date]
            kept.append(special.to_dict())
            kept.sort(key=lambda e: e["date"])
            return kept

        return await BarberRepository._update_json_column(barber_id, "special_hours", mutate)

    @staticmethod
    async def remove_special_hours(barber_id: int, date_str: str) -> bool:
        """Удалить особые часы на дату"""
        return await BarberRepository._update_json_column(
            barber_id,
            "special_hours",
            lambda entries: [e for e in entries if e.get("date") != date_str],
        )
