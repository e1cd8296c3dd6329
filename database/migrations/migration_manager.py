"""Менеджер миграций базы данных"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Type

import aiosqlite


class Migration(ABC):
    """Базовый класс для миграций"""

    version: int
    description: str

    @abstractmethod
    async def upgrade(self, db: aiosqlite.Connection):
        """Применить миграцию"""

    @abstractmethod
    async def downgrade(self, db: aiosqlite.Connection):
        """Откатить миграцию"""


class MigrationManager:
    """Применение и откат версий схемы

    Каждая миграция выполняется в своей транзакции вместе с записью
    в schema_migrations, поэтому упавшая миграция не оставляет следов.
    """

    def __init__(self, db_path: str, migrations: Iterable[Type[Migration]] = ()):
        self.db_path = db_path
        self.migrations: List[Type[Migration]] = []
        for migration_class in migrations:
            self.register(migration_class)

    def register(self, migration_class: Type[Migration]):
        """Регистрация миграции"""
        if any(m.version == migration_class.version for m in self.migrations):
            raise ValueError(f"Duplicate migration version {migration_class.version}")
        self.migrations.append(migration_class)
        self.migrations.sort(key=lambda m: m.version)

    @property
    def latest_version(self) -> int:
        return self.migrations[-1].version if self.migrations else 0

    async def init_migrations_table(self):
        """Создание таблицы миграций"""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """CREATE TABLE IF NOT EXISTS schema_migrations
                (version INTEGER PRIMARY KEY,
                 description TEXT,
                 applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"""
            )
            await db.commit()

    async def get_current_version(self) -> int:
        """Текущая версия схемы"""
        await self.init_migrations_table()
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute("SELECT MAX(version) FROM schema_migrations") as cursor:
                result = await cursor.fetchone()
                return result[0] if result and result[0] else 0

    async def migrate(self, target_version: Optional[int] = None) -> List[int]:
        """Применить миграции до target_version (по умолчанию до последней)

        Returns:
            Список применённых версий
        """
        current = await self.get_current_version()
        target = target_version if target_version is not None else self.latest_version

        if current >= target:
            logging.info(f"Database already at version {current}")
            return []

        applied = []
        async with aiosqlite.connect(self.db_path) as db:
            for migration_class in self.migrations:
                if not current < migration_class.version <= target:
                    continue

                migration = migration_class()
                logging.info(f"Applying migration {migration.version}: {migration.description}")
                try:
                    await db.execute("BEGIN")
                    await migration.upgrade(db)
                    await db.execute(
                        "INSERT INTO schema_migrations (version, description) VALUES (?, ?)",
                        (migration.version, migration.description),
                    )
                    await db.commit()
                except Exception as e:
                    await db.rollback()
                    logging.error(f"Migration {migration.version} failed: {e}")
                    raise

                applied.append(migration.version)
                logging.info(f"Migration {migration.version} applied")

        return applied

    async def rollback(self, target_version: int) -> List[int]:
        """Откатить миграции до target_version

        Returns:
            Список откаченных версий
        """
        current = await self.get_current_version()

        if current <= target_version:
            logging.info("Nothing to rollback")
            return []

        rolled_back = []
        async with aiosqlite.connect(self.db_path) as db:
            for migration_class in reversed(self.migrations):
                if not target_version < migration_class.version <= current:
                    continue

                migration = migration_class()
                logging.info(f"Rolling back migration {migration.version}")
                try:
                    await db.execute("BEGIN")
                    await migration.downgrade(db)
                    await db.execute(
                        "DELETE FROM schema_migrations WHERE version=?",
                        (migration.version,),
                    )
                    await db.commit()
                except Exception as e:
                    await db.rollback()
                    logging.error(f"Rollback {migration.version} failed: {e}")
                    raise

                rolled_back.append(migration.version)

        return rolled_back
