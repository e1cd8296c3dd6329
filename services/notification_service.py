"""Сервис уведомлений администраторов"""

import logging
from typing import Optional

from aiogram import Bot

from config import ADMIN_IDS, NOTIFY_MAX_ATTEMPTS, NOTIFY_RETRY_DELAY
from utils.retry import retry_delivery


class NotificationService:
    """Сервис для отправки уведомлений админам

    Без бота (BOT_TOKEN не задан) уведомления только пишутся в лог.
    Ошибки доставки логируются и не пробрасываются: уведомление не должно
    ронять фоновую задачу, которая его отправляет.
    """

    def __init__(self, bot: Optional[Bot] = None):
        self.bot = bot

    @retry_delivery(max_attempts=NOTIFY_MAX_ATTEMPTS, delay=NOTIFY_RETRY_DELAY)
    async def _send(self, chat_id: int, text: str):
        await self.bot.send_message(chat_id, text)

    async def notify_admins(self, text: str) -> int:
        """Отправить сообщение всем админам

        Returns:
            Количество админов, получивших сообщение
        """
        if not self.bot:
            logging.info(f"Admin notification (no bot): {text}")
            return 0

        delivered = 0
        for admin_id in ADMIN_IDS:
            try:
                await self._send(admin_id, text)
                delivered += 1
            except Exception as e:
                logging.error(f"Failed to notify admin {admin_id}: {e}")
        return delivered

    async def notify_settlement_complete(self, result) -> int:
        """Итог ежедневного расчёта"""
        return await self.notify_admins(
            "💰 Расчёт выполнен\n\n"
            f"Салонов: {result.count}\n"
            f"{result.message}"
        )

    async def notify_job_failed(self, job_id: str, error: BaseException) -> int:
        """Фоновая задача упала"""
        return await self.notify_admins(
            f"⚠️ Задача {job_id} завершилась с ошибкой\n\n{type(error).__name__}: {error}"
        )

    async def notify_user_flagged(self, user) -> int:
        """Пользователь превысил лимит неявок и отмен"""
        return await self.notify_admins(
            "🚩 Пользователь помечен\n\n"
            f"ID: {user.user_id}\n"
            f"Неявки: {user.no_show_count}, отмены: {user.cancellation_count}"
        )
