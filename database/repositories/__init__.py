"""Репозитории для работы с базой данных"""

from database.repositories.barber_repository import BarberRepository
from database.repositories.booking_repository import BookingRepository
from database.repositories.config_repository import SystemConfigRepository
from database.repositories.settlement_repository import SettlementRepository
from database.repositories.shop_repository import ShopRepository
from database.repositories.user_repository import UserRepository

__all__ = [
    "BarberRepository",
    "BookingRepository",
    "SettlementRepository",
    "ShopRepository",
    "SystemConfigRepository",
    "UserRepository",
]
