"""Начальная схема: салоны, мастера, клиенты, записи, глобальный конфиг"""

from database.migrations.migration_manager import Migration


class InitialSchema(Migration):
    version = 1
    description = "Shops, barbers, users, bookings and system config"

    async def upgrade(self, db):
        await db.execute(
            """CREATE TABLE IF NOT EXISTS shops
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            address TEXT,
            owner_id INTEGER,
            buffer_time INTEGER NOT NULL DEFAULT 0,
            min_booking_notice INTEGER NOT NULL DEFAULT 0,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP)"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS users
            (user_id INTEGER PRIMARY KEY,
            name TEXT,
            phone TEXT UNIQUE,
            role TEXT NOT NULL DEFAULT 'user',
            no_show_count INTEGER NOT NULL DEFAULT 0,
            cancellation_count INTEGER NOT NULL DEFAULT 0,
            is_flagged INTEGER NOT NULL DEFAULT 0,
            first_seen TEXT)"""
        )

        # breaks / weekly_schedule / special_hours хранятся как JSON
        await db.execute(
            """CREATE TABLE IF NOT EXISTS barbers
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            shop_id INTEGER NOT NULL REFERENCES shops(id),
            name TEXT NOT NULL,
            avatar TEXT,
            start_hour TEXT DEFAULT '10:00',
            end_hour TEXT DEFAULT '20:00',
            breaks TEXT NOT NULL DEFAULT '[]',
            weekly_schedule TEXT NOT NULL DEFAULT '[]',
            special_hours TEXT NOT NULL DEFAULT '[]',
            is_available INTEGER NOT NULL DEFAULT 1)"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS bookings
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER REFERENCES users(user_id),
            shop_id INTEGER NOT NULL REFERENCES shops(id),
            barber_id INTEGER NOT NULL REFERENCES barbers(id),
            date TEXT NOT NULL,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'upcoming',
            booking_type TEXT NOT NULL DEFAULT 'online',
            payment_method TEXT NOT NULL DEFAULT 'cash',
            original_price REAL DEFAULT 0,
            discount_amount REAL DEFAULT 0,
            final_price REAL DEFAULT 0,
            admin_commission REAL DEFAULT 0,
            admin_net_revenue REAL DEFAULT 0,
            barber_net_revenue REAL DEFAULT 0,
            amount_collected_by TEXT DEFAULT 'BARBER',
            notes TEXT,
            created_at TEXT NOT NULL)"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS system_config
            (id INTEGER PRIMARY KEY CHECK (id = 1),
            key TEXT NOT NULL DEFAULT 'global',
            yearly_cancellation_limit INTEGER DEFAULT 12,
            admin_commission_rate REAL DEFAULT 10,
            user_discount_rate REAL DEFAULT 0,
            max_cash_bookings_per_month INTEGER DEFAULT 5,
            is_payment_test_mode INTEGER DEFAULT 0,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP)"""
        )

        # Индексы для производительности
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_barbers_shop ON barbers(shop_id)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_bookings_barber_date ON bookings(barber_id, date)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_bookings_status_date ON bookings(status, date)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_bookings_user ON bookings(user_id)"
        )

    async def downgrade(self, db):
        await db.execute("DROP TABLE IF EXISTS bookings")
        await db.execute("DROP TABLE IF EXISTS barbers")
        await db.execute("DROP TABLE IF EXISTS users")
        await db.execute("DROP TABLE IF EXISTS shops")
        await db.execute("DROP TABLE IF EXISTS system_config")
