"""Репозиторий для работы с записями"""

import logging
from typing import Iterable, List, Optional

import aiosqlite

from config import DATABASE_PATH
from database.base_repository import BaseRepository
from database.models import (
    Booking,
    BookingStatus,
    PaymentSettlementStatus,
    StatusTransitionError,
)
from utils.datetime_utils import business_now

# Запись ещё не попала ни в один расчёт (NULL - старые записи без статуса)
UNSETTLED_CONDITION = "(settlement_status = 'PENDING' OR settlement_status IS NULL)"


def _placeholders(values: Iterable) -> str:
    return ", ".join("?" for _ in values)


class BookingRepository(BaseRepository):
    """Хранилище записей"""

    @staticmethod
    def _row_to_booking(row) -> Booking:
        return Booking(
            id=row["id"],
            user_id=row["user_id"],
            shop_id=row["shop_id"],
            barber_id=row["barber_id"],
            date=row["date"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            status=row["status"],
            booking_type=row["booking_type"],
            payment_method=row["payment_method"],
            original_price=row["original_price"] or 0.0,
            discount_amount=row["discount_amount"] or 0.0,
            final_price=row["final_price"] or 0.0,
            admin_commission=row["admin_commission"] or 0.0,
            admin_net_revenue=row["admin_net_revenue"] or 0.0,
            barber_net_revenue=row["barber_net_revenue"] or 0.0,
            amount_collected_by=row["amount_collected_by"],
            settlement_status=row["settlement_status"],
            settlement_id=row["settlement_id"],
            notes=row["notes"],
            created_at=row["created_at"],
        )

    @staticmethod
    async def insert_booking(db: aiosqlite.Connection, booking: Booking) -> int:
        """INSERT в рамках чужой транзакции"""
        cursor = await db.execute(
            """INSERT INTO bookings
            (user_id, shop_id, barber_id, date, start_time, end_time, status,
             booking_type, payment_method, original_price, discount_amount,
             final_price, admin_commission, admin_net_revenue, barber_net_revenue,
             amount_collected_by, settlement_status, settlement_id, notes, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                booking.user_id,
                booking.shop_id,
                booking.barber_id,
                booking.date,
                booking.start_time,
                booking.end_time,
                booking.status,
                booking.booking_type,
                booking.payment_method,
                booking.original_price,
                booking.discount_amount,
                booking.final_price,
                booking.admin_commission,
                booking.admin_net_revenue,
                booking.barber_net_revenue,
                booking.amount_collected_by,
                booking.settlement_status,
                booking.settlement_id,
                booking.notes,
                booking.created_at or business_now().isoformat(),
            ),
        )
        return cursor.lastrowid

    @staticmethod
    async def create_booking(booking: Booking) -> int:
        """Сохранить запись как есть (без проверок слота)"""
        async with aiosqlite.connect(DATABASE_PATH) as db:
            booking_id = await BookingRepository.insert_booking(db, booking)
            await db.commit()
            return booking_id

    @staticmethod
    async def get_booking(booking_id: int) -> Optional[Booking]:
        """Получить запись по ID"""
        try:
            row = await BookingRepository._execute_query(
                "SELECT * FROM bookings WHERE id=?", (booking_id,), fetch_one=True
            )
            return BookingRepository._row_to_booking(row) if row else None
        except Exception as e:
            logging.error(f"Error getting booking {booking_id}: {e}")
            return None

    @staticmethod
    async def fetch_active_bookings(
        db: aiosqlite.Connection, barber_ids: List[int], dates: List[str]
    ) -> List[Booking]:
        """Неотменённые записи мастеров на указанные даты"""
        if not barber_ids or not dates:
            return []
        db.row_factory = aiosqlite.Row
        async with db.execute(
            f"""SELECT * FROM bookings
            WHERE barber_id IN ({_placeholders(barber_ids)})
              AND date IN ({_placeholders(dates)})
              AND status != ?""",
            (*barber_ids, *dates, BookingStatus.CANCELLED),
        ) as cursor:
            rows = await cursor.fetchall()
        return [BookingRepository._row_to_booking(row) for row in rows]

    @staticmethod
    async def get_active_bookings(barber_ids: List[int], dates: List[str]) -> List[Booking]:
        """То же, что fetch_active_bookings, в отдельном соединении"""
        async with aiosqlite.connect(DATABASE_PATH) as db:
            return await BookingRepository.fetch_active_bookings(db, barber_ids, dates)

    @staticmethod
    async def get_sweep_candidates(today: str) -> List[Booking]:
        """Предстоящие/ожидающие записи с датой не позже сегодняшней"""
        rows = await BookingRepository._execute_query(
            """SELECT * FROM bookings
            WHERE status IN (?, ?) AND date <= ?
            ORDER BY date, end_time""",
            (BookingStatus.UPCOMING, BookingStatus.PENDING, today),
            fetch_all=True,
        )
        return [BookingRepository._row_to_booking(row) for row in rows or []]

    @staticmethod
    async def mark_missed(booking_id: int) -> bool:
        """Перевести запись в missed

        Условие по статусу делает операцию идемпотентной: уже обработанная
        запись не изменится.
        """
        rowcount = await BookingRepository._execute_query(
            "UPDATE bookings SET status=? WHERE id=? AND status IN (?, ?)",
            (
                BookingStatus.MISSED,
                booking_id,
                BookingStatus.UPCOMING,
                BookingStatus.PENDING,
            ),
            commit=True,
        )
        return rowcount > 0

    @staticmethod
    async def update_status(booking_id: int, new_status: str) -> Booking:
        """Сменить статус записи (только вперёд)

        Raises:
            LookupError: записи нет
            StatusTransitionError: переход назад или из финального статуса
        """
        if new_status not in BookingStatus.ALL:
            raise StatusTransitionError(f"Unknown booking status: {new_status}")

        async with aiosqlite.connect(DATABASE_PATH) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("BEGIN IMMEDIATE")
            try:
                async with db.execute(
                    "SELECT * FROM bookings WHERE id=?", (booking_id,)
                ) as cursor:
                    row = await cursor.fetchone()

                if not row:
                    raise LookupError(f"Booking {booking_id} not found")

                booking = BookingRepository._row_to_booking(row)
                if not BookingStatus.can_transition(booking.status, new_status):
                    raise StatusTransitionError(
                        f"Booking {booking_id}: {booking.status} -> {new_status} is not allowed"
                    )

                await db.execute(
                    "UPDATE bookings SET status=? WHERE id=?", (new_status, booking_id)
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        booking.status = new_status
        logging.info(f"Booking {booking_id} status changed to {new_status}")
        return booking

    @staticmethod
    async def count_cash_bookings(
        db: aiosqlite.Connection, user_id: int, date_from: str, date_to: str
    ) -> int:
        """Неотменённые записи пользователя с оплатой наличными за период"""
        async with db.execute(
            """SELECT COUNT(*) FROM bookings
            WHERE user_id=? AND status != ? AND LOWER(payment_method)='cash'
              AND date >= ? AND date <= ?""",
            (user_id, BookingStatus.CANCELLED, date_from, date_to),
        ) as cursor:
            return (await cursor.fetchone())[0]

    @staticmethod
    async def fetch_unsettled_completed(
        db: aiosqlite.Connection,
        before_date: Optional[str] = None,
        shop_id: Optional[int] = None,
        booking_ids: Optional[List[int]] = None,
    ) -> List[Booking]:
        """Завершённые записи, ещё не попавшие в расчёт"""
        query = f"SELECT * FROM bookings WHERE status=? AND {UNSETTLED_CONDITION}"
        params: list = [BookingStatus.COMPLETED]

        if before_date is not None:
            query += " AND date < ?"
            params.append(before_date)
        if shop_id is not None:
            query += " AND shop_id = ?"
            params.append(shop_id)
        if booking_ids:
            query += f" AND id IN ({_placeholders(booking_ids)})"
            params.extend(booking_ids)

        query += " ORDER BY shop_id, date, id"

        db.row_factory = aiosqlite.Row
        async with db.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [BookingRepository._row_to_booking(row) for row in rows]

    @staticmethod
    async def get_unsettled_completed(
        before_date: Optional[str] = None, shop_id: Optional[int] = None
    ) -> List[Booking]:
        """Завершённые неоплаченные записи (отдельное соединение, только чтение)"""
        async with aiosqlite.connect(DATABASE_PATH) as db:
            return await BookingRepository.fetch_unsettled_completed(
                db, before_date=before_date, shop_id=shop_id
            )

    @staticmethod
    async def mark_settled(
        db: aiosqlite.Connection, booking_ids: List[int], settlement_id: int
    ) -> int:
        """Привязать записи к расчёту в рамках чужой транзакции

        Returns:
            Количество обновлённых записей (уже рассчитанные не трогаем)
        """
        if not booking_ids:
            return 0
        cursor = await db.execute(
            f"""UPDATE bookings SET settlement_status=?, settlement_id=?
            WHERE id IN ({_placeholders(booking_ids)}) AND {UNSETTLED_CONDITION}""",
            (PaymentSettlementStatus.SETTLED, settlement_id, *booking_ids),
        )
        return cursor.rowcount
