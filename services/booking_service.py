"""Сервис управления бронированием"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import aiosqlite

from config import DATABASE_PATH, ONLINE_PAYMENT_METHODS
from database.models import Booking, BookingStatus, PaymentSettlementStatus, StatusTransitionError
from database.repositories.barber_repository import BarberRepository
from database.repositories.booking_repository import BookingRepository
from database.repositories.config_repository import SystemConfigRepository
from database.repositories.shop_repository import ShopRepository
from database.repositories.user_repository import UserRepository
from services.slot_service import barber_fits, build_barber_day
from utils.datetime_utils import minutes_to_time, month_bounds, previous_date, time_to_minutes
from utils.helpers import is_cash, round_money


@dataclass
class BookingFinancials:
    """Денежные поля записи"""

    original_price: float
    discount_amount: float
    final_price: float
    admin_commission: float
    admin_net_revenue: float
    barber_net_revenue: float
    amount_collected_by: str


def calculate_booking_financials(
    original_price: float,
    commission_rate: float,
    discount_rate: float,
    payment_method: str,
) -> BookingFinancials:
    """Расчёт комиссии и долей

    Комиссия считается от исходной цены, скидку оплачивает платформа
    (вычитается из её доли).
    """
    original_price = round_money(original_price)
    discount_amount = round_money(original_price * discount_rate / 100)
    admin_commission = round_money(original_price * commission_rate / 100)
    collected_by = (
        "ADMIN" if (payment_method or "").upper() in ONLINE_PAYMENT_METHODS else "BARBER"
    )

    return BookingFinancials(
        original_price=original_price,
        discount_amount=discount_amount,
        final_price=round_money(original_price - discount_amount),
        admin_commission=admin_commission,
        admin_net_revenue=round_money(admin_commission - discount_amount),
        barber_net_revenue=round_money(original_price - admin_commission),
        amount_collected_by=collected_by,
    )


class BookingService:
    """Сервис для работы с бронированием"""

    async def create_booking(
        self,
        shop_id: int,
        barber_id: int,
        date_str: str,
        start_time: str,
        duration: int,
        price: float,
        user_id: Optional[int] = None,
        payment_method: str = "cash",
        status: str = BookingStatus.UPCOMING,
        booking_type: str = "online",
        notes: Optional[str] = None,
    ) -> Tuple[bool, str, Optional[int]]:
        """Создание записи с атомарной проверкой слота

        Returns:
            Tuple[bool, str, Optional[int]]: (success, error_code, booking_id)
        """
        barber = await BarberRepository.get_barber(barber_id)
        if not barber or barber.shop_id != shop_id:
            return False, "barber_not_found", None

        shop = await ShopRepository.get_shop(shop_id)
        if not shop:
            return False, "barber_not_found", None

        config = await SystemConfigRepository.get_config()
        start_minutes = time_to_minutes(start_time)
        financials = calculate_booking_financials(
            price, config.admin_commission_rate, config.user_discount_rate, payment_method
        )

        async with aiosqlite.connect(DATABASE_PATH) as db:
            await db.execute("BEGIN IMMEDIATE")

            try:
                # Лимит записей с оплатой наличными в месяц
                if user_id is not None and is_cash(payment_method):
                    month_start, month_end = month_bounds(date_str)
                    cash_count = await BookingRepository.count_cash_bookings(
                        db, user_id, month_start, month_end
                    )
                    if cash_count >= config.max_cash_bookings_per_month:
                        await db.rollback()
                        logging.warning(f"User {user_id} reached monthly cash booking limit")
                        return False, "cash_limit_exceeded", None

                # Пересечения с записями этого дня и ночным хвостом вчерашнего
                existing = await BookingRepository.fetch_active_bookings(
                    db, [barber_id], [date_str, previous_date(date_str)]
                )
                day = build_barber_day(barber, date_str, existing, shop.buffer_time)
                if not barber_fits(day, start_minutes, duration + shop.buffer_time):
                    await db.rollback()
                    logging.info(f"Slot {date_str} {start_time} not available for barber {barber_id}")
                    return False, "slot_taken", None

                booking_id = await BookingRepository.insert_booking(
                    db,
                    Booking(
                        id=None,
                        user_id=user_id,
                        shop_id=shop_id,
                        barber_id=barber_id,
                        date=date_str,
                        start_time=start_time,
                        end_time=minutes_to_time(start_minutes + duration),
                        status=status,
                        booking_type=booking_type,
                        payment_method=payment_method,
                        original_price=financials.original_price,
                        discount_amount=financials.discount_amount,
                        final_price=financials.final_price,
                        admin_commission=financials.admin_commission,
                        admin_net_revenue=financials.admin_net_revenue,
                        barber_net_revenue=financials.barber_net_revenue,
                        amount_collected_by=financials.amount_collected_by,
                        settlement_status=PaymentSettlementStatus.PENDING,
                        notes=notes,
                    ),
                )

                await db.commit()
                logging.info(f"Booking created: {booking_id} for barber {barber_id}")
                return True, "success", booking_id

            except Exception as e:
                await db.rollback()
                logging.error(f"Error in create_booking: {e}")
                return False, "unknown_error", None

    async def _change_status(self, booking_id: int, new_status: str) -> Optional[Booking]:
        try:
            return await BookingRepository.update_status(booking_id, new_status)
        except (LookupError, StatusTransitionError) as e:
            logging.warning(f"Cannot set booking {booking_id} to {new_status}: {e}")
            return None

    async def cancel_booking(self, booking_id: int, user_id: Optional[int] = None) -> bool:
        """Отмена записи (с проверкой владельца, если передан user_id)"""
        if user_id is not None:
            booking = await BookingRepository.get_booking(booking_id)
            if not booking or booking.user_id != user_id:
                logging.warning(f"Booking {booking_id} not found for user {user_id}")
                return False

        booking = await self._change_status(booking_id, BookingStatus.CANCELLED)
        if not booking:
            return False

        if booking.user_id is not None:
            await UserRepository.increment_cancellation(booking.user_id)

        logging.info(f"Booking {booking_id} cancelled")
        return True

    async def check_in_booking(self, booking_id: int) -> bool:
        """Клиент пришёл"""
        return await self._change_status(booking_id, BookingStatus.CHECKED_IN) is not None

    async def complete_booking(self, booking_id: int) -> bool:
        """Услуга оказана - запись попадает в будущий расчёт"""
        return await self._change_status(booking_id, BookingStatus.COMPLETED) is not None
