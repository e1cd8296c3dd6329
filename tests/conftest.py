"""Конфигурация pytest и общие фикстуры для всех тестов

Этот файл содержит:
- Настройку тестовой среды
- Mock объекты для aiogram (Bot, Message)
- Фикстуры для БД и фабрики сущностей
- Заморозку бизнес-времени
- Автоматическую очистку после тестов
"""

import os
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import AsyncMock, Mock, patch

import pytest
from aiogram.types import Chat, Message, User

# Добавляем корневую папку в PYTHONPATH
sys.path.insert(0, str(Path(__file__).parent.parent))

# ============================================================================
# НАСТРОЙКА ТЕСТОВОЙ СРЕДЫ
# ============================================================================

# Настройка переменных окружения ДО импорта config
os.environ["DATABASE_PATH"] = "./test_salon.db"
os.environ["BOT_TOKEN"] = "1234567890:ABCdefGHIjklMNOpqrsTUVwxyz12345678"
os.environ["ADMIN_IDS"] = "12345"

# Теперь можно импортировать модули проекта
from config import DATABASE_PATH  # noqa: E402
from database.models import Barber, Booking, BookingStatus, Shop  # noqa: E402
from database.queries import Database  # noqa: E402
from database.repositories import (  # noqa: E402
    BarberRepository,
    BookingRepository,
    ShopRepository,
    UserRepository,
)
from services.notification_service import NotificationService  # noqa: E402
from services.settlement_service import SettlementService  # noqa: E402
from services.sweeper_service import MissedBookingSweeper  # noqa: E402
from utils.datetime_utils import BusinessTime, week_start  # noqa: E402

ADMIN_USER_ID = 12345

# ============================================================================
# PYTEST КОНФИГУРАЦИЯ
# ============================================================================


def pytest_configure(config):
    """Регистрация пользовательских маркеров"""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "integration: integration test")
    config.addinivalue_line("markers", "unit: unit test")


# ============================================================================
# ОЧИСТКА БД
# ============================================================================


@pytest.fixture(autouse=True)
async def cleanup_database():
    """Автоматическая очистка БД после каждого теста"""
    yield

    import aiosqlite

    try:
        async with aiosqlite.connect(DATABASE_PATH) as db:
            await db.execute("DELETE FROM settlements")
            await db.execute("DELETE FROM bookings")
            await db.execute("DELETE FROM barbers")
            await db.execute("DELETE FROM shops")
            await db.execute("DELETE FROM users")
            await db.execute("DELETE FROM system_config")
            await db.commit()
    except Exception as e:
        print(f"Warning: Failed to cleanup test database: {e}")


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_db_on_exit():
    """Удаляем тестовую БД после всех тестов"""
    yield

    if os.path.exists(DATABASE_PATH):
        try:
            os.remove(DATABASE_PATH)
            print(f"\n✅ Cleaned up test database: {DATABASE_PATH}")
        except Exception as e:
            print(f"\n⚠️  Warning: Could not remove test database: {e}")


@pytest.fixture
async def init_database():
    """Инициализация тестовой БД"""
    await Database.init_db()
    yield


# ============================================================================
# ЗАМОРОЗКА ВРЕМЕНИ
# ============================================================================

# Модули, которые берут "сейчас" через utils.datetime_utils
_TIME_TARGETS = ("services.slot_service", "services.sweeper_service")


@pytest.fixture
def freeze_business_time():
    """Зафиксировать бизнес-время: freeze("2024-06-05", 600)"""
    stack = ExitStack()

    def _freeze(date_str: str, minutes: int = 0) -> BusinessTime:
        now = BusinessTime(date=date_str, minutes=minutes)
        for module in _TIME_TARGETS:
            stack.enter_context(patch(f"{module}.current_business_time", return_value=now))
        stack.enter_context(
            patch(
                "services.settlement_service.current_week_start",
                return_value=week_start(date_str),
            )
        )
        return now

    yield _freeze
    stack.close()


# ============================================================================
# MOCK SCHEDULER
# ============================================================================


class MockScheduler:
    """Mock APScheduler для тестов"""

    def __init__(self):
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.job_history: List[Dict[str, Any]] = []
        self.running = False

    def add_job(self, func, trigger, id=None, replace_existing=False, **kwargs):
        """Мок add_job"""
        if id in self.jobs and not replace_existing:
            raise Exception(f"Job {id} already exists")

        job = Mock()
        job.id = id
        job.func = func
        job.trigger = trigger
        job.kwargs = kwargs
        self.jobs[id] = job
        self.job_history.append({"action": "add", "id": id})
        return job

    def get_job(self, job_id: str):
        """Мок get_job"""
        return self.jobs.get(job_id)

    def get_jobs(self) -> List:
        """Мок get_jobs"""
        return list(self.jobs.values())

    def start(self):
        self.running = True

    def shutdown(self, wait=True):
        """Мок shutdown"""
        self.running = False
        self.jobs.clear()


@pytest.fixture
def mock_scheduler():
    """Фикстура mock scheduler"""
    return MockScheduler()


# ============================================================================
# MOCK BOT
# ============================================================================


class MockBot:
    """Mock Telegram Bot для тестов"""

    def __init__(self):
        self.sent_messages: List[Dict[str, Any]] = []
        self.session = Mock()
        self.session.close = AsyncMock()

    async def send_message(self, chat_id: int, text: str, reply_markup=None, **kwargs):
        """Мок send_message"""
        self.sent_messages.append(
            {"chat_id": chat_id, "text": text, "reply_markup": reply_markup, **kwargs}
        )
        message = Mock(spec=Message)
        message.message_id = len(self.sent_messages)
        message.text = text
        return message

    def clear_history(self):
        """Очистить историю для тестов"""
        self.sent_messages.clear()


@pytest.fixture
def mock_bot():
    """Фикстура mock bot"""
    return MockBot()


# ============================================================================
# MOCK AIOGRAM OBJECTS
# ============================================================================


@pytest.fixture
def mock_message():
    """Создание mock Message"""

    def _create_message(text: str = "/settle", user_id: int = ADMIN_USER_ID) -> Message:
        user = Mock(spec=User)
        user.id = user_id
        user.username = "admin"
        user.is_bot = False

        chat = Mock(spec=Chat)
        chat.id = user_id
        chat.type = "private"

        message = Mock(spec=Message)
        message.text = text
        message.message_id = 1
        message.from_user = user
        message.chat = chat
        message.answer = AsyncMock(return_value=Mock(spec=Message))
        return message

    return _create_message


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def notification_service(mock_bot):
    return NotificationService(mock_bot)


@pytest.fixture
def settlement_service(notification_service):
    return SettlementService(notification_service)


@pytest.fixture
def sweeper(notification_service):
    return MissedBookingSweeper(notification_service)


# ============================================================================
# DATABASE HELPER FIXTURES
# ============================================================================


@pytest.fixture
async def create_test_shop(init_database):
    """Создание салона"""

    async def _create(name: str = "Test Salon", buffer_time: int = 0, min_booking_notice: int = 0):
        return await ShopRepository.create_shop(
            Shop(id=None, name=name, buffer_time=buffer_time, min_booking_notice=min_booking_notice)
        )

    return _create


@pytest.fixture
async def create_test_barber(init_database):
    """Создание мастера (по умолчанию 10:00-20:00 без перерывов)"""

    async def _create(shop_id: int, **fields) -> int:
        fields.setdefault("name", "Test Barber")
        return await BarberRepository.create_barber(Barber(id=None, shop_id=shop_id, **fields))

    return _create


@pytest.fixture
async def create_test_user(init_database):
    """Создание пользователя"""

    async def _create(user_id: int = 777, name: str = "Client") -> int:
        await UserRepository.create_user(user_id, name=name)
        return user_id

    return _create


@pytest.fixture
async def create_test_booking(init_database):
    """Создание записи напрямую в БД (без проверки слота)"""

    async def _create(
        shop_id: int,
        barber_id: int,
        date_str: str,
        start_time: str = "10:00",
        end_time: str = "10:30",
        status: str = BookingStatus.UPCOMING,
        **fields,
    ) -> int:
        return await BookingRepository.create_booking(
            Booking(
                id=None,
                shop_id=shop_id,
                barber_id=barber_id,
                date=date_str,
                start_time=start_time,
                end_time=end_time,
                status=status,
                **fields,
            )
        )

    return _create


# ============================================================================
# ASSERTION HELPERS
# ============================================================================


@pytest.fixture
def assert_message_sent(mock_bot):
    """Проверка что сообщение было отправлено"""

    def _assert(text_contains: str = None, chat_id: int = None):
        messages = mock_bot.sent_messages
        assert len(messages) > 0, "No messages sent"

        if text_contains:
            found = any(text_contains in msg["text"] for msg in messages)
            assert found, f"No message contains '{text_contains}'"

        if chat_id:
            found = any(msg["chat_id"] == chat_id for msg in messages)
            assert found, f"No message sent to chat_id {chat_id}"

    return _assert
