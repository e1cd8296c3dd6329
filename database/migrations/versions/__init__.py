"""Пакет для версий миграций"""

from database.migrations.versions.v001_initial_schema import InitialSchema
from database.migrations.versions.v002_add_settlements import AddSettlements

# Добавляйте сюда новые миграции
ALL_MIGRATIONS = [InitialSchema, AddSettlements]

__all__ = ["InitialSchema", "AddSettlements", "ALL_MIGRATIONS"]
