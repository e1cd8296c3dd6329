"""Вспомогательные функции"""

from decimal import ROUND_HALF_UP, Decimal

from config import ADMIN_IDS

CENTS = Decimal("0.01")
MONEY_EPSILON = Decimal("1e-9")


def round_money(amount) -> float:
    """Округление суммы до 2 знаков (half-up)

    Идём через строковое представление и небольшой эпсилон, чтобы
    1.005 не превращалось в 1.00 из-за двоичного float.
    """
    value = Decimal(str(amount or 0)) + MONEY_EPSILON
    return float(value.quantize(CENTS, rounding=ROUND_HALF_UP))


def is_cash(payment_method) -> bool:
    """Оплата наличными (регистр не важен)"""
    return (payment_method or "").strip().lower() == "cash"


def format_money(amount: float) -> str:
    """Сумма для сообщений админам"""
    return f"₹{amount:,.2f}"


def is_admin(user_id: int) -> bool:
    """Проверка прав администратора"""
    return user_id in ADMIN_IDS
