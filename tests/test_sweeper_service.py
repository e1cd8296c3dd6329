"""Тесты для автоотмены пропущенных записей"""

from unittest.mock import patch

import pytest

from database.models import BookingStatus, SystemConfig
from database.repositories import BookingRepository, SystemConfigRepository, UserRepository
from services.sweeper_service import is_missed
from utils.datetime_utils import BusinessTime

TODAY = "2024-06-05"
YESTERDAY = "2024-06-04"
NOW_MINUTES = 600  # 10:00


@pytest.fixture
async def salon(create_test_shop, create_test_barber):
    shop_id = await create_test_shop()
    barber_id = await create_test_barber(shop_id)
    return shop_id, barber_id


class TestIsMissed:
    """Правило "время записи прошло" """

    def _booking(self, date_str, start, end):
        from database.models import Booking

        return Booking(id=1, shop_id=1, barber_id=1, date=date_str, start_time=start, end_time=end)

    def test_past_date_always_missed(self):
        now = BusinessTime(TODAY, 0)

        assert is_missed(self._booking(YESTERDAY, "23:00", "23:30"), now)
        assert is_missed(self._booking(YESTERDAY, "", ""), now)

    def test_today_depends_on_end_time(self):
        now = BusinessTime(TODAY, NOW_MINUTES)

        assert is_missed(self._booking(TODAY, "09:00", "09:30"), now)
        assert not is_missed(self._booking(TODAY, "09:30", "10:00"), now)
        assert not is_missed(self._booking(TODAY, "09:45", "10:15"), now)

    def test_future_date_not_missed(self):
        assert not is_missed(self._booking("2024-06-06", "00:00", "00:30"), BusinessTime(TODAY, 1439))

    def test_overnight_booking_not_missed_on_start_day(self):
        now = BusinessTime(TODAY, 1425)

        assert not is_missed(self._booking(TODAY, "23:30", "00:30"), now)
        assert is_missed(self._booking(YESTERDAY, "23:30", "00:30"), BusinessTime(TODAY, 45))


class TestSweep:
    """Проход автоотмены по базе"""

    @pytest.mark.asyncio
    async def test_marks_past_bookings_missed(
        self, sweeper, freeze_business_time, salon, create_test_booking
    ):
        freeze_business_time(TODAY, NOW_MINUTES)
        shop_id, barber_id = salon
        yesterday_id = await create_test_booking(shop_id, barber_id, YESTERDAY, "18:00", "18:30")
        ended_id = await create_test_booking(
            shop_id, barber_id, TODAY, "09:00", "09:30", status=BookingStatus.PENDING
        )
        running_id = await create_test_booking(shop_id, barber_id, TODAY, "09:45", "10:15")
        completed_id = await create_test_booking(
            shop_id, barber_id, YESTERDAY, "12:00", "12:30", status=BookingStatus.COMPLETED
        )

        count = await sweeper.sweep_missed_bookings()

        assert count == 2
        statuses = {
            booking_id: (await BookingRepository.get_booking(booking_id)).status
            for booking_id in (yesterday_id, ended_id, running_id, completed_id)
        }
        assert statuses == {
            yesterday_id: BookingStatus.MISSED,
            ended_id: BookingStatus.MISSED,
            running_id: BookingStatus.UPCOMING,
            completed_id: BookingStatus.COMPLETED,
        }

    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(
        self, sweeper, freeze_business_time, salon, create_test_booking, create_test_user
    ):
        freeze_business_time(TODAY, NOW_MINUTES)
        shop_id, barber_id = salon
        user_id = await create_test_user()
        await create_test_booking(shop_id, barber_id, YESTERDAY, user_id=user_id)

        assert await sweeper.sweep_missed_bookings() == 1
        assert await sweeper.sweep_missed_bookings() == 0

        user = await UserRepository.get_user(user_id)
        assert user.no_show_count == 1

    @pytest.mark.asyncio
    async def test_walk_in_without_user(
        self, sweeper, freeze_business_time, salon, create_test_booking
    ):
        freeze_business_time(TODAY, NOW_MINUTES)
        shop_id, barber_id = salon
        booking_id = await create_test_booking(shop_id, barber_id, YESTERDAY, user_id=None)

        assert await sweeper.sweep_missed_bookings() == 1
        assert (await BookingRepository.get_booking(booking_id)).status == BookingStatus.MISSED

    @pytest.mark.asyncio
    async def test_user_update_failure_keeps_missed_status(
        self, sweeper, freeze_business_time, salon, create_test_booking, create_test_user
    ):
        freeze_business_time(TODAY, NOW_MINUTES)
        shop_id, barber_id = salon
        failing_user = await create_test_user(1)
        other_user = await create_test_user(2)
        first = await create_test_booking(shop_id, barber_id, YESTERDAY, "10:00", "10:30", user_id=failing_user)
        second = await create_test_booking(shop_id, barber_id, YESTERDAY, "11:00", "11:30", user_id=other_user)

        real_increment = UserRepository.increment_no_show

        async def flaky_increment(user_id):
            if user_id == failing_user:
                raise RuntimeError("database is locked")
            return await real_increment(user_id)

        with patch.object(UserRepository, "increment_no_show", new=flaky_increment):
            count = await sweeper.sweep_missed_bookings()

        assert count == 2
        assert (await BookingRepository.get_booking(first)).status == BookingStatus.MISSED
        assert (await BookingRepository.get_booking(second)).status == BookingStatus.MISSED
        assert (await UserRepository.get_user(failing_user)).no_show_count == 0
        assert (await UserRepository.get_user(other_user)).no_show_count == 1


class TestFlagging:
    """Пометка клиента при превышении лимита"""

    @pytest.mark.asyncio
    async def test_flag_set_once(
        self, sweeper, freeze_business_time, salon, create_test_booking, create_test_user, mock_bot
    ):
        freeze_business_time(TODAY, NOW_MINUTES)
        shop_id, barber_id = salon
        user_id = await create_test_user()
        await SystemConfigRepository.update_config(SystemConfig(yearly_cancellation_limit=2))
        await UserRepository.increment_cancellation(user_id)
        await UserRepository.increment_cancellation(user_id)

        await create_test_booking(shop_id, barber_id, YESTERDAY, "10:00", "10:30", user_id=user_id)
        await sweeper.sweep_missed_bookings()

        user = await UserRepository.get_user(user_id)
        assert user.is_flagged is True
        assert user.total_incidents == 3

        await create_test_booking(shop_id, barber_id, YESTERDAY, "11:00", "11:30", user_id=user_id)
        await sweeper.sweep_missed_bookings()

        flag_messages = [m for m in mock_bot.sent_messages if "Пользователь помечен" in m["text"]]
        assert len(flag_messages) == 1
        assert (await UserRepository.get_user(user_id)).no_show_count == 2

    @pytest.mark.asyncio
    async def test_limit_not_exceeded(
        self, sweeper, freeze_business_time, salon, create_test_booking, create_test_user
    ):
        freeze_business_time(TODAY, NOW_MINUTES)
        shop_id, barber_id = salon
        user_id = await create_test_user()
        await SystemConfigRepository.update_config(SystemConfig(yearly_cancellation_limit=2))
        await create_test_booking(shop_id, barber_id, YESTERDAY, "10:00", "10:30", user_id=user_id)
        await create_test_booking(shop_id, barber_id, YESTERDAY, "11:00", "11:30", user_id=user_id)

        await sweeper.sweep_missed_bookings()

        # 2 неявки при лимите 2 - ещё не превышение
        assert (await UserRepository.get_user(user_id)).is_flagged is False

    @pytest.mark.asyncio
    async def test_default_limit_when_config_zero(self, init_database):
        await SystemConfigRepository.update_config(SystemConfig(yearly_cancellation_limit=0))

        config = await SystemConfigRepository.get_config()

        assert config.yearly_cancellation_limit == 12
