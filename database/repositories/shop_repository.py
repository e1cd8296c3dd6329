"""Репозиторий для работы с салонами"""

import logging
from typing import Optional

from database.base_repository import BaseRepository
from database.models import Shop


class ShopRepository(BaseRepository):
    """Репозиторий салонов"""

    @staticmethod
    def _row_to_shop(row) -> Shop:
        return Shop(
            id=row["id"],
            name=row["name"],
            address=row["address"],
            owner_id=row["owner_id"],
            buffer_time=row["buffer_time"] or 0,
            min_booking_notice=row["min_booking_notice"] or 0,
        )

    @staticmethod
    async def create_shop(shop: Shop) -> int:
        """Создать салон"""
        shop_id = await ShopRepository._insert(
            """INSERT INTO shops (name, address, owner_id, buffer_time, min_booking_notice)
            VALUES (?, ?, ?, ?, ?)""",
            (shop.name, shop.address, shop.owner_id, shop.buffer_time, shop.min_booking_notice),
        )
        logging.info(f"Shop {shop_id} created: {shop.name}")
        return shop_id

    @staticmethod
    async def get_shop(shop_id: int) -> Optional[Shop]:
        """Получить салон по ID"""
        try:
            row = await ShopRepository._execute_query(
                "SELECT * FROM shops WHERE id=?", (shop_id,), fetch_one=True
            )
            return ShopRepository._row_to_shop(row) if row else None
        except Exception as e:
            logging.error(f"Error getting shop {shop_id}: {e}")
            return None

    @staticmethod
    async def get_shop_names() -> dict:
        """Словарь id -> название (для отчётов)"""
        try:
            rows = await ShopRepository._execute_query(
                "SELECT id, name FROM shops", fetch_all=True
            )
            return {row["id"]: row["name"] for row in rows or []}
        except Exception as e:
            logging.error(f"Error getting shop names: {e}")
            return {}
