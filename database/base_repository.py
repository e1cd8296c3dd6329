"""Базовый репозиторий с общими helper'ами для запросов"""

from typing import Any, Optional, Sequence

import aiosqlite

from config import DATABASE_PATH


class BaseRepository:
    """Общие методы доступа к SQLite"""

    @staticmethod
    def connect() -> aiosqlite.Connection:
        """Новое соединение с базой (использовать как async context manager)"""
        return aiosqlite.connect(DATABASE_PATH)

    @staticmethod
    async def _execute_query(
        query: str,
        params: Sequence[Any] = (),
        fetch_one: bool = False,
        fetch_all: bool = False,
        commit: bool = False,
    ) -> Any:
        """Выполнить запрос в отдельном соединении

        Returns:
            строку, список строк или rowcount (если ничего не читаем)
        """
        async with aiosqlite.connect(DATABASE_PATH) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cursor:
                if fetch_one:
                    result = await cursor.fetchone()
                elif fetch_all:
                    result = await cursor.fetchall()
                else:
                    result = cursor.rowcount
            if commit:
                await db.commit()
            return result

    @staticmethod
    async def _insert(query: str, params: Sequence[Any] = ()) -> Optional[int]:
        """INSERT с возвратом id новой строки"""
        async with aiosqlite.connect(DATABASE_PATH) as db:
            cursor = await db.execute(query, params)
            await db.commit()
            return cursor.lastrowid

    @staticmethod
    async def _exists(table: str, where: str, params: Sequence[Any] = ()) -> bool:
        """Проверить наличие строки"""
        row = await BaseRepository._execute_query(
            f"SELECT 1 FROM {table} WHERE {where} LIMIT 1", params, fetch_one=True
        )
        return row is not None

    @staticmethod
    async def _count(table: str, where: str = "", params: Sequence[Any] = ()) -> int:
        """Количество строк"""
        query = f"SELECT COUNT(*) FROM {table}"
        if where:
            query += f" WHERE {where}"
        row = await BaseRepository._execute_query(query, params, fetch_one=True)
        return row[0] if row else 0
