"""Репозиторий глобальных настроек платформы"""

from database.base_repository import BaseRepository
from database.models import SystemConfig
from utils.datetime_utils import business_now


class SystemConfigRepository(BaseRepository):
    """Синглтон system_config (id=1, key='global')"""

    @staticmethod
    async def get_config() -> SystemConfig:
        """Получить настройки (значения по умолчанию, если строки нет)"""
        row = await SystemConfigRepository._execute_query(
            "SELECT * FROM system_config WHERE id=1", fetch_one=True
        )
        if not row:
            return SystemConfig()

        defaults = SystemConfig()
        return SystemConfig(
            # 0/NULL в базе означает "не задано"
            yearly_cancellation_limit=(
                row["yearly_cancellation_limit"] or defaults.yearly_cancellation_limit
            ),
            admin_commission_rate=(
                row["admin_commission_rate"]
                if row["admin_commission_rate"] is not None
                else defaults.admin_commission_rate
            ),
            user_discount_rate=(
                row["user_discount_rate"]
                if row["user_discount_rate"] is not None
                else defaults.user_discount_rate
            ),
            max_cash_bookings_per_month=(
                row["max_cash_bookings_per_month"] or defaults.max_cash_bookings_per_month
            ),
            is_payment_test_mode=bool(row["is_payment_test_mode"]),
            updated_at=row["updated_at"],
        )

    @staticmethod
    async def update_config(config: SystemConfig) -> bool:
        """Сохранить настройки"""
        rowcount = await SystemConfigRepository._execute_query(
            """INSERT OR REPLACE INTO system_config
            (id, key, yearly_cancellation_limit, admin_commission_rate,
             user_discount_rate, max_cash_bookings_per_month, is_payment_test_mode,
             updated_at)
            VALUES (1, 'global', ?, ?, ?, ?, ?, ?)""",
            (
                config.yearly_cancellation_limit,
                config.admin_commission_rate,
                config.user_discount_rate,
                config.max_cash_bookings_per_month,
                config.is_payment_test_mode,
                business_now().isoformat(),
            ),
            commit=True,
        )
        return rowcount > 0
