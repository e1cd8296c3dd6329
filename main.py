"""Главный файл приложения"""

import asyncio
import logging

from aiogram import Bot, Dispatcher

from config import (
    AUTO_CANCEL_INTERVAL_MINUTES,
    BOT_TOKEN,
    SETTLEMENT_HOUR,
    SETTLEMENT_MINUTE,
)
from database.queries import Database
from handlers import admin_handlers
from services.job_scheduler import JobScheduler
from services.notification_service import NotificationService
from services.settlement_service import SettlementService
from services.sweeper_service import MissedBookingSweeper

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

AUTO_CANCEL_JOB_ID = "auto_cancel_missed_bookings"
SETTLEMENT_JOB_ID = "daily_settlement"


def build_scheduler(
    settlement_service: SettlementService,
    sweeper: MissedBookingSweeper,
    notification_service: NotificationService,
) -> JobScheduler:
    """Планировщик с задачами автоотмены и расчёта"""
    scheduler = JobScheduler(notification_service=notification_service)
    scheduler.register_periodic_task(
        AUTO_CANCEL_INTERVAL_MINUTES, sweeper.sweep_missed_bookings, AUTO_CANCEL_JOB_ID
    )
    scheduler.register_daily_task(
        SETTLEMENT_HOUR, SETTLEMENT_MINUTE, settlement_service.run_settlement, SETTLEMENT_JOB_ID
    )
    return scheduler


async def main():
    """Главная функция"""
    # Инициализация БД
    version = await Database.init_db()
    logging.info(f"Database schema version: {version}")

    # Бот нужен только для уведомлений админам и ручных команд
    bot = Bot(token=BOT_TOKEN) if BOT_TOKEN else None

    # Сервисы
    notification_service = NotificationService(bot)
    settlement_service = SettlementService(notification_service)
    sweeper = MissedBookingSweeper(notification_service)

    scheduler = build_scheduler(settlement_service, sweeper, notification_service)
    scheduler.start()

    logging.info("🚀 Salon jobs started")

    try:
        if bot:
            dp = Dispatcher()

            # Регистрация сервисов для dependency injection
            dp["settlement_service"] = settlement_service
            dp["sweeper"] = sweeper
            dp["notification_service"] = notification_service

            dp.include_router(admin_handlers.router)

            await dp.start_polling(bot, skip_updates=True)
        else:
            logging.warning("BOT_TOKEN is not set, running scheduler only")
            await asyncio.Event().wait()
    finally:
        scheduler.shutdown()
        if bot:
            await bot.session.close()


if __name__ == "__main__":
    asyncio.run(main())
