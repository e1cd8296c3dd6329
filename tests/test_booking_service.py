"""Тесты для BookingService

Критические сценарии:
- Расчёт денежных полей записи
- Создание записи (успех, занятый слот, лимит наличных)
- Отмена и смена статусов только вперёд
"""

import asyncio

import pytest

from database.models import BookingStatus, SpecialHours, SystemConfig
from database.repositories import BookingRepository, SystemConfigRepository, UserRepository
from services.booking_service import BookingService, calculate_booking_financials

DATE = "2030-01-10"


@pytest.fixture
def booking_service():
    return BookingService()


@pytest.fixture
async def salon(create_test_shop, create_test_barber):
    """Салон с одним мастером 10:00-20:00"""
    shop_id = await create_test_shop()
    barber_id = await create_test_barber(shop_id)
    return shop_id, barber_id


class TestFinancials:
    """calculate_booking_financials"""

    def test_cash_booking(self):
        f = calculate_booking_financials(100, commission_rate=10, discount_rate=0, payment_method="cash")

        assert f.admin_commission == 10
        assert f.admin_net_revenue == 10
        assert f.barber_net_revenue == 90
        assert f.final_price == 100
        assert f.amount_collected_by == "BARBER"

    def test_discount_paid_by_platform(self):
        f = calculate_booking_financials(100, commission_rate=10, discount_rate=5, payment_method="UPI")

        assert f.discount_amount == 5
        assert f.final_price == 95
        assert f.admin_net_revenue == 5
        assert f.barber_net_revenue == 90
        assert f.amount_collected_by == "ADMIN"

    def test_rounding(self):
        f = calculate_booking_financials(333.33, commission_rate=15, discount_rate=0, payment_method="cash")

        assert f.admin_commission == 50.0
        assert f.barber_net_revenue == 283.33


class TestCreateBooking:
    """Тесты создания записи"""

    @pytest.mark.asyncio
    async def test_create_booking_success(self, booking_service, salon):
        shop_id, barber_id = salon

        success, code, booking_id = await booking_service.create_booking(
            shop_id, barber_id, DATE, "10:00", 30, 200, user_id=None
        )

        assert success is True
        assert code == "success"

        booking = await BookingRepository.get_booking(booking_id)
        assert booking.end_time == "10:30"
        assert booking.status == BookingStatus.UPCOMING
        assert booking.settlement_status == "PENDING"
        assert booking.barber_net_revenue == 180

    @pytest.mark.asyncio
    async def test_slot_taken(self, booking_service, salon):
        shop_id, barber_id = salon

        first = await booking_service.create_booking(shop_id, barber_id, DATE, "10:00", 30, 100)
        second = await booking_service.create_booking(shop_id, barber_id, DATE, "10:15", 30, 100)
        third = await booking_service.create_booking(shop_id, barber_id, DATE, "10:30", 30, 100)

        assert first[0] is True
        assert second == (False, "slot_taken", None)
        assert third[0] is True

    @pytest.mark.asyncio
    async def test_outside_working_hours(self, booking_service, salon):
        shop_id, barber_id = salon

        success, code, _ = await booking_service.create_booking(
            shop_id, barber_id, DATE, "19:45", 30, 100
        )

        assert success is False
        assert code == "slot_taken"

    @pytest.mark.asyncio
    async def test_barber_of_other_shop(self, booking_service, salon, create_test_shop):
        _, barber_id = salon
        other_shop = await create_test_shop(name="Other")

        result = await booking_service.create_booking(other_shop, barber_id, DATE, "10:00", 30, 100)

        assert result == (False, "barber_not_found", None)

    @pytest.mark.asyncio
    async def test_concurrent_bookings_same_slot(self, booking_service, salon):
        """Только одна из параллельных попыток занимает слот"""
        shop_id, barber_id = salon

        results = await asyncio.gather(
            *[
                booking_service.create_booking(shop_id, barber_id, DATE, "12:00", 30, 100)
                for _ in range(3)
            ]
        )

        assert sum(1 for success, _, _ in results if success) == 1

    @pytest.mark.asyncio
    async def test_overnight_booking_blocks_next_day_tail(
        self, booking_service, create_test_shop, create_test_barber
    ):
        shop_id = await create_test_shop()
        barber_id = await create_test_barber(shop_id, start_hour="22:00", end_hour="02:00")

        late = await booking_service.create_booking(shop_id, barber_id, DATE, "23:30", 60, 100)
        after_midnight = await booking_service.create_booking(
            shop_id, barber_id, "2030-01-11", "00:00", 30, 100
        )

        assert late[0] is True
        assert after_midnight == (False, "slot_taken", None)

        booking = await BookingRepository.get_booking(late[2])
        assert booking.end_time == "00:30"

    @pytest.mark.asyncio
    async def test_closed_special_day(self, booking_service, create_test_shop, create_test_barber):
        shop_id = await create_test_shop()
        barber_id = await create_test_barber(
            shop_id, special_hours=[SpecialHours(date=DATE, is_open=False)]
        )

        result = await booking_service.create_booking(shop_id, barber_id, DATE, "12:00", 30, 100)

        assert result == (False, "slot_taken", None)


class TestCashLimit:
    """Лимит записей с оплатой наличными"""

    @pytest.mark.asyncio
    async def test_cash_limit_exceeded(self, booking_service, salon, create_test_user):
        shop_id, barber_id = salon
        user_id = await create_test_user()
        await SystemConfigRepository.update_config(SystemConfig(max_cash_bookings_per_month=1))

        first = await booking_service.create_booking(
            shop_id, barber_id, DATE, "10:00", 30, 100, user_id=user_id
        )
        second = await booking_service.create_booking(
            shop_id, barber_id, "2030-01-20", "10:00", 30, 100, user_id=user_id
        )
        online = await booking_service.create_booking(
            shop_id, barber_id, "2030-01-20", "10:00", 30, 100, user_id=user_id, payment_method="UPI"
        )
        next_month = await booking_service.create_booking(
            shop_id, barber_id, "2030-02-01", "10:00", 30, 100, user_id=user_id
        )

        assert first[0] is True
        assert second == (False, "cash_limit_exceeded", None)
        assert online[0] is True
        assert next_month[0] is True

    @pytest.mark.asyncio
    async def test_cancelled_cash_booking_not_counted(
        self, booking_service, salon, create_test_user
    ):
        shop_id, barber_id = salon
        user_id = await create_test_user()
        await SystemConfigRepository.update_config(SystemConfig(max_cash_bookings_per_month=1))

        _, _, booking_id = await booking_service.create_booking(
            shop_id, barber_id, DATE, "10:00", 30, 100, user_id=user_id
        )
        await booking_service.cancel_booking(booking_id, user_id)

        success, _, _ = await booking_service.create_booking(
            shop_id, barber_id, DATE, "11:00", 30, 100, user_id=user_id
        )

        assert success is True


class TestStatusChanges:
    """Отмена и смена статусов"""

    @pytest.mark.asyncio
    async def test_cancel_increments_user_counter(self, booking_service, salon, create_test_user):
        shop_id, barber_id = salon
        user_id = await create_test_user()
        _, _, booking_id = await booking_service.create_booking(
            shop_id, barber_id, DATE, "10:00", 30, 100, user_id=user_id
        )

        assert await booking_service.cancel_booking(booking_id, user_id) is True

        user = await UserRepository.get_user(user_id)
        booking = await BookingRepository.get_booking(booking_id)
        assert user.cancellation_count == 1
        assert booking.status == BookingStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_foreign_booking(self, booking_service, salon, create_test_user):
        shop_id, barber_id = salon
        owner = await create_test_user(777)
        _, _, booking_id = await booking_service.create_booking(
            shop_id, barber_id, DATE, "10:00", 30, 100, user_id=owner
        )

        assert await booking_service.cancel_booking(booking_id, user_id=888) is False

    @pytest.mark.asyncio
    async def test_completed_booking_cannot_be_cancelled(self, booking_service, salon):
        shop_id, barber_id = salon
        _, _, booking_id = await booking_service.create_booking(
            shop_id, barber_id, DATE, "10:00", 30, 100
        )

        assert await booking_service.check_in_booking(booking_id) is True
        assert await booking_service.complete_booking(booking_id) is True
        assert await booking_service.cancel_booking(booking_id) is False

        booking = await BookingRepository.get_booking(booking_id)
        assert booking.status == BookingStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_unknown_booking(self, booking_service, init_database):
        assert await booking_service.complete_booking(424242) is False
