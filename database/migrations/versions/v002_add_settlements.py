"""Миграция: таблица расчётов и статус расчёта у записей"""

from database.migrations.migration_manager import Migration


class AddSettlements(Migration):
    version = 2
    description = "Add settlements table and booking settlement columns"

    async def upgrade(self, db):
        await db.execute(
            """CREATE TABLE IF NOT EXISTS settlements
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
             shop_id INTEGER NOT NULL REFERENCES shops(id),
             admin_id INTEGER,
             type TEXT NOT NULL CHECK (type IN ('PAYOUT', 'COLLECTION')),
             amount REAL NOT NULL CHECK (amount >= 0),
             status TEXT NOT NULL DEFAULT 'GENERATED',
             bookings TEXT NOT NULL DEFAULT '[]',
             date_range_start TEXT,
             date_range_end TEXT,
             generated_at TEXT NOT NULL,
             payment_link TEXT,
             transaction_id TEXT,
             notes TEXT)"""
        )

        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_settlements_shop ON settlements(shop_id, generated_at)"
        )

        # Проверяем есть ли уже колонки (старые базы могли их получить вручную)
        async with db.execute("PRAGMA table_info(bookings)") as cursor:
            columns = await cursor.fetchall()
            column_names = [col[1] for col in columns]

        # Старые записи без статуса считаются неоплаченными (NULL == PENDING)
        if "settlement_status" not in column_names:
            await db.execute(
                "ALTER TABLE bookings ADD COLUMN settlement_status TEXT DEFAULT 'PENDING'"
            )

        # Без REFERENCES: иначе откат не сможет удалить колонку (DROP COLUMN)
        if "settlement_id" not in column_names:
            await db.execute(
                "ALTER TABLE bookings ADD COLUMN settlement_id INTEGER"
            )

        await db.execute(
            """CREATE INDEX IF NOT EXISTS idx_bookings_settlement
            ON bookings(status, settlement_status, date)"""
        )

    async def downgrade(self, db):
        await db.execute("DROP INDEX IF EXISTS idx_bookings_settlement")
        await db.execute("ALTER TABLE bookings DROP COLUMN settlement_id")
        await db.execute("ALTER TABLE bookings DROP COLUMN settlement_status")
        await db.execute("DROP TABLE IF EXISTS settlements")
