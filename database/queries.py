"""Инициализация базы данных"""

import logging

from config import DATABASE_PATH
from database.migrations.migration_manager import MigrationManager
from database.migrations.versions import ALL_MIGRATIONS


class Database:
    """Точка входа для подготовки схемы"""

    @staticmethod
    def migration_manager(db_path: str = None) -> MigrationManager:
        """Менеджер миграций со всеми зарегистрированными версиями"""
        return MigrationManager(db_path or DATABASE_PATH, ALL_MIGRATIONS)

    @staticmethod
    async def init_db(db_path: str = None) -> int:
        """Привести схему к последней версии

        Returns:
            Текущая версия схемы
        """
        manager = Database.migration_manager(db_path)
        applied = await manager.migrate()
        version = await manager.get_current_version()
        if applied:
            logging.info(f"Database migrated to version {version} (applied {applied})")
        return version
