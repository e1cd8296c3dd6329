"""Репозиторий для работы с пользователями"""

import logging
from typing import Optional

from database.base_repository import BaseRepository
from database.models import User
from utils.datetime_utils import business_now


class UserRepository(BaseRepository):
    """Репозиторий для управления пользователями"""

    @staticmethod
    def _row_to_user(row) -> User:
        return User(
            user_id=row["user_id"],
            name=row["name"],
            phone=row["phone"],
            role=row["role"],
            no_show_count=row["no_show_count"] or 0,
            cancellation_count=row["cancellation_count"] or 0,
            is_flagged=bool(row["is_flagged"]),
            first_seen=row["first_seen"],
        )

    @staticmethod
    async def create_user(
        user_id: int, name: str = None, phone: str = None, role: str = "user"
    ) -> bool:
        """Зарегистрировать пользователя (повторный вызов ничего не меняет)"""
        rowcount = await UserRepository._execute_query(
            """INSERT OR IGNORE INTO users (user_id, name, phone, role, first_seen)
            VALUES (?, ?, ?, ?, ?)""",
            (user_id, name, phone, role, business_now().isoformat()),
            commit=True,
        )
        return rowcount > 0

    @staticmethod
    async def get_user(user_id: int) -> Optional[User]:
        """Получить пользователя"""
        try:
            row = await UserRepository._execute_query(
                "SELECT * FROM users WHERE user_id=?", (user_id,), fetch_one=True
            )
            return UserRepository._row_to_user(row) if row else None
        except Exception as e:
            logging.error(f"Error getting user {user_id}: {e}")
            return None

    @staticmethod
    async def increment_no_show(user_id: int) -> Optional[User]:
        """Атомарно увеличить счётчик неявок

        Returns:
            пользователь после обновления или None, если его нет
        """
        rowcount = await UserRepository._execute_query(
            "UPDATE users SET no_show_count = no_show_count + 1 WHERE user_id=?",
            (user_id,),
            commit=True,
        )
        if not rowcount:
            return None
        return await UserRepository.get_user(user_id)

    @staticmethod
    async def increment_cancellation(user_id: int) -> Optional[User]:
        """Атомарно увеличить счётчик отмен"""
        rowcount = await UserRepository._execute_query(
            "UPDATE users SET cancellation_count = cancellation_count + 1 WHERE user_id=?",
            (user_id,),
            commit=True,
        )
        if not rowcount:
            return None
        return await UserRepository.get_user(user_id)

    @staticmethod
    async def flag_user(user_id: int) -> bool:
        """Пометить пользователя как нарушителя

        Returns:
            True, только если флаг был выставлен этим вызовом
        """
        rowcount = await UserRepository._execute_query(
            "UPDATE users SET is_flagged=1 WHERE user_id=? AND is_flagged=0",
            (user_id,),
            commit=True,
        )
        if rowcount:
            logging.warning(f"User {user_id} flagged for repeated no-shows/cancellations")
        return rowcount > 0

    @staticmethod
    async def get_flagged_users_count() -> int:
        """Количество помеченных пользователей"""
        return await UserRepository._count("users", "is_flagged=1")
