"""Планировщик фоновых задач"""

import logging
from functools import wraps
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config import BUSINESS_TIMEZONE

JobHandler = Callable[[], Awaitable]


class JobScheduler:
    """Обёртка над AsyncIOScheduler

    Каждая задача выполняется не более чем в одном экземпляре
    (max_instances=1), пропущенные запуски схлопываются в один.
    Исключение задачи логируется и отправляется админам, планировщик
    продолжает работу.
    """

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None, notification_service=None):
        self.scheduler = scheduler or AsyncIOScheduler(
            timezone=BUSINESS_TIMEZONE,
            job_defaults={"coalesce": True, "max_instances": 1},
        )
        self.notification_service = notification_service

    def _guarded(self, job_id: str, handler: JobHandler) -> JobHandler:
        @wraps(handler)
        async def run():
            logging.info(f"Job {job_id} started")
            try:
                result = await handler()
            except Exception as e:
                logging.exception(f"Job {job_id} failed: {e}")
                if self.notification_service:
                    await self.notification_service.notify_job_failed(job_id, e)
                return None
            logging.info(f"Job {job_id} finished: {result}")
            return result

        return run

    def register_periodic_task(self, interval_minutes: int, handler: JobHandler, job_id: str):
        """Задача каждые interval_minutes минут"""
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")

        return self.scheduler.add_job(
            self._guarded(job_id, handler),
            IntervalTrigger(minutes=interval_minutes),
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def register_daily_task(self, hour: int, minute: int, handler: JobHandler, job_id: str):
        """Задача раз в сутки в hour:minute по бизнес-времени"""
        return self.scheduler.add_job(
            self._guarded(job_id, handler),
            CronTrigger(hour=hour, minute=minute, timezone=BUSINESS_TIMEZONE),
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    async def run_now(self, job_id: str):
        """Выполнить зарегистрированную задачу немедленно (через ту же защиту)"""
        job = self.scheduler.get_job(job_id)
        if not job:
            raise LookupError(f"Job {job_id} is not registered")
        return await job.func()

    def start(self):
        self.scheduler.start()
        logging.info(f"Scheduler started with jobs: {[job.id for job in self.scheduler.get_jobs()]}")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
