"""Автоотмена пропущенных записей

Каждые 30 минут записи в статусах upcoming/pending, время которых прошло,
переводятся в missed. Клиенту засчитывается неявка; если неявок и отмен в
сумме больше годового лимита, клиент помечается (один раз).

Каждая запись обрабатывается независимо: сбой обновления клиента
логируется и не откатывает уже выставленный статус missed.
"""

import logging
from typing import Optional

from database.models import Booking
from database.repositories.booking_repository import BookingRepository
from database.repositories.config_repository import SystemConfigRepository
from database.repositories.user_repository import UserRepository
from services.slot_service import booking_minutes
from utils.datetime_utils import BusinessTime, current_business_time


def is_missed(booking: Booking, now: BusinessTime) -> bool:
    """Прошла ли запись к моменту now

    Запись через полночь (конец раньше начала) заканчивается на следующий
    день, поэтому в день начала пропущенной не считается.
    """
    if booking.date < now.date:
        return True
    if booking.date > now.date:
        return False
    _, end = booking_minutes(booking)
    return end < now.minutes


class MissedBookingSweeper:
    """Фоновая задача автоотмены"""

    def __init__(self, notification_service=None):
        self.notification_service = notification_service

    async def sweep_missed_bookings(self) -> int:
        """Один проход

        Returns:
            Количество записей, переведённых в missed этим проходом
        """
        now = current_business_time()
        config = await SystemConfigRepository.get_config()
        candidates = await BookingRepository.get_sweep_candidates(now.date)

        missed_count = 0
        for booking in candidates:
            try:
                if not is_missed(booking, now):
                    continue
            except ValueError as e:
                logging.error(f"Skipping booking {booking.id} with invalid time: {e}")
                continue

            if not await BookingRepository.mark_missed(booking.id):
                # Уже обработана параллельно или статус успел смениться
                continue
            missed_count += 1

            if booking.user_id is None:
                continue

            try:
                await self._register_no_show(booking.user_id, config.yearly_cancellation_limit)
            except Exception as e:
                logging.error(
                    f"Failed to update user {booking.user_id} for missed booking {booking.id}: {e}"
                )

        logging.info(f"Auto-cancelled {missed_count} missed bookings")
        return missed_count

    async def _register_no_show(self, user_id: int, limit: int) -> Optional[bool]:
        user = await UserRepository.increment_no_show(user_id)
        if not user:
            logging.warning(f"User {user_id} not found, no-show not recorded")
            return None

        if user.is_flagged or user.total_incidents <= limit:
            return False

        flagged = await UserRepository.flag_user(user_id)
        if flagged and self.notification_service:
            user.is_flagged = True
            await self.notification_service.notify_user_flagged(user)
        return flagged

