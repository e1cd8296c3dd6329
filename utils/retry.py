"""Повторная отправка сообщений в Telegram

Повторяются только сбои доставки (сеть, 5xx, flood control). Ошибки вроде
"бот заблокирован" или "чат не найден" повторять бессмысленно, они сразу
уходят вызывающему.
"""

import asyncio
import logging
from functools import wraps
from typing import Callable, Tuple, Type

from aiogram.exceptions import TelegramNetworkError, TelegramRetryAfter, TelegramServerError

TRANSPORT_ERRORS: Tuple[Type[BaseException], ...] = (
    TelegramNetworkError,
    TelegramServerError,
    TelegramRetryAfter,
    ConnectionError,
    asyncio.TimeoutError,
)


def _wait_time(error: BaseException, current_delay: float) -> float:
    # Telegram сам говорит, сколько ждать при flood control
    if isinstance(error, TelegramRetryAfter):
        return max(float(error.retry_after), current_delay)
    return current_delay


def retry_delivery(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    retry_on: Tuple[Type[BaseException], ...] = TRANSPORT_ERRORS,
):
    """Декоратор повторной доставки для корутин отправки

    Args:
        max_attempts: Максимальное количество попыток
        delay: Задержка перед второй попыткой (секунды)
        backoff: Множитель задержки для следующих попыток
        retry_on: Ошибки транспорта, после которых имеет смысл повторить
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            current_delay = delay

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    if attempt == max_attempts:
                        logging.error(f"Delivery failed after {max_attempts} attempts: {e}")
                        raise

                    wait = _wait_time(e, current_delay)
                    logging.warning(
                        f"Delivery attempt {attempt}/{max_attempts} failed "
                        f"({type(e).__name__}), retrying in {wait}s"
                    )
                    await asyncio.sleep(wait)
                    current_delay *= backoff

        return wrapper

    return decorator
