"""Конфигурация приложения"""

import os
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()

# Telegram (только для админских уведомлений и ручного запуска задач)
BOT_TOKEN = os.getenv("BOT_TOKEN")

# Админы (поддержка нескольких)
ADMIN_IDS_STR = os.getenv("ADMIN_IDS", "")
ADMIN_IDS = [int(id.strip()) for id in ADMIN_IDS_STR.split(",") if id.strip()]

# База данных
DATABASE_PATH = os.getenv("DATABASE_PATH", "salon.db")

# Бизнес-время: IST (UTC+5:30), не зависит от таймзоны сервера
BUSINESS_UTC_OFFSET_MINUTES = 330
# Таймзона планировщика (IST без перехода на летнее время, совпадает со сдвигом)
BUSINESS_TIMEZONE = ZoneInfo("Asia/Kolkata")

MINUTES_IN_DAY = 1440

# Сетка слотов
SLOT_STEP_MINUTES = 15
DEFAULT_SERVICE_DURATION = 30

# Расписание фоновых задач
AUTO_CANCEL_INTERVAL_MINUTES = 30
SETTLEMENT_HOUR = 0
SETTLEMENT_MINUTE = 0

# Значения по умолчанию для глобального конфига (system_config)
DEFAULT_YEARLY_CANCELLATION_LIMIT = 12
DEFAULT_ADMIN_COMMISSION_RATE = 10.0  # %
DEFAULT_USER_DISCOUNT_RATE = 0.0  # %
DEFAULT_MAX_CASH_BOOKINGS_PER_MONTH = 5

# Дефолтные часы мастера
DEFAULT_START_HOUR = "10:00"
DEFAULT_END_HOUR = "20:00"

# Повторные попытки отправки уведомлений
NOTIFY_MAX_ATTEMPTS = 3
NOTIFY_RETRY_DELAY = 1.0  # секунды

# Способы оплаты, при которых деньги получает платформа
ONLINE_PAYMENT_METHODS = ("UPI", "ONLINE")

# Названия дней недели (индекс = datetime.weekday())
DAY_NAMES = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]
