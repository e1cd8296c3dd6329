"""Модели данных"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from config import (
    DEFAULT_ADMIN_COMMISSION_RATE,
    DEFAULT_END_HOUR,
    DEFAULT_MAX_CASH_BOOKINGS_PER_MONTH,
    DEFAULT_START_HOUR,
    DEFAULT_USER_DISCOUNT_RATE,
    DEFAULT_YEARLY_CANCELLATION_LIMIT,
    MINUTES_IN_DAY,
)


class StatusTransitionError(ValueError):
    """Недопустимый переход статуса"""


class BookingStatus:
    """Статусы записи"""

    UPCOMING = "upcoming"
    PENDING = "pending"
    CHECKED_IN = "checked-in"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    BLOCKED = "blocked"
    NO_SHOW = "no-show"
    MISSED = "missed"

    ALL = (UPCOMING, PENDING, CHECKED_IN, COMPLETED, CANCELLED, BLOCKED, NO_SHOW, MISSED)

    # Только вперёд: завершённую запись нельзя "раз-завершить"
    TRANSITIONS = {
        PENDING: {UPCOMING, CHECKED_IN, COMPLETED, CANCELLED, NO_SHOW, MISSED},
        UPCOMING: {CHECKED_IN, COMPLETED, CANCELLED, NO_SHOW, MISSED},
        CHECKED_IN: {COMPLETED, NO_SHOW},
        BLOCKED: {CANCELLED},
        COMPLETED: set(),
        CANCELLED: set(),
        NO_SHOW: set(),
        MISSED: set(),
    }

    @classmethod
    def can_transition(cls, current: str, new: str) -> bool:
        return new in cls.TRANSITIONS.get(current, set())


class PaymentSettlementStatus:
    """Статус расчёта по конкретной записи"""

    PENDING = "PENDING"
    SETTLED = "SETTLED"
    PARTIAL = "PARTIAL"


class SettlementType:
    """Направление расчёта"""

    PAYOUT = "PAYOUT"  # платформа платит салону
    COLLECTION = "COLLECTION"  # салон платит платформе


class SettlementStatus:
    """Статусы записи о расчёте"""

    GENERATED = "GENERATED"
    PENDING_PAYOUT = "PENDING_PAYOUT"
    PENDING_COLLECTION = "PENDING_COLLECTION"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    TRANSITIONS = {
        GENERATED: {PENDING_PAYOUT, PENDING_COLLECTION, COMPLETED, FAILED},
        PENDING_PAYOUT: {COMPLETED, FAILED},
        PENDING_COLLECTION: {COMPLETED, FAILED},
        FAILED: {PENDING_PAYOUT, PENDING_COLLECTION},
        COMPLETED: set(),
    }

    @classmethod
    def for_type(cls, settlement_type: str) -> str:
        if settlement_type == SettlementType.PAYOUT:
            return cls.PENDING_PAYOUT
        return cls.PENDING_COLLECTION

    @classmethod
    def can_transition(cls, current: str, new: str) -> bool:
        return new in cls.TRANSITIONS.get(current, set())


@dataclass
class TimeRange:
    """Интервал в минутах от полуночи"""

    start: int
    end: int

    def overlaps(self, start: int, end: int) -> bool:
        return start < self.end and end > self.start

    def shifted(self, delta: int) -> "TimeRange":
        return TimeRange(self.start + delta, self.end + delta)


@dataclass
class EffectiveSchedule:
    """Расписание мастера на конкретную дату (вычисляется, не хранится)"""

    is_open: bool
    start: int
    end: int
    breaks: List[TimeRange] = field(default_factory=list)

    @property
    def is_overnight(self) -> bool:
        return self.end > MINUTES_IN_DAY


@dataclass
class BreakPeriod:
    """Перерыв мастера"""

    start_time: Optional[str]
    end_time: Optional[str]
    title: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BreakPeriod":
        return cls(
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            title=data.get("title"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"startTime": self.start_time, "endTime": self.end_time}
        if self.title:
            data["title"] = self.title
        return data


@dataclass
class WeeklyOverride:
    """Переопределение часов на день недели"""

    day: str
    is_open: bool = True
    start_hour: Optional[str] = None
    end_hour: Optional[str] = None
    breaks: List[BreakPeriod] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeeklyOverride":
        return cls(
            day=data["day"],
            is_open=data.get("isOpen", True),
            start_hour=data.get("startHour"),
            end_hour=data.get("endHour"),
            breaks=[BreakPeriod.from_dict(b) for b in data.get("breaks") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "isOpen": self.is_open,
            "startHour": self.start_hour,
            "endHour": self.end_hour,
            "breaks": [b.to_dict() for b in self.breaks],
        }


@dataclass
class SpecialHours:
    """Особые часы на конкретную дату (праздник, разовая смена)"""

    date: str
    is_open: bool = True
    start_hour: Optional[str] = None
    end_hour: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpecialHours":
        return cls(
            date=data["date"],
            is_open=data.get("isOpen", True),
            start_hour=data.get("startHour"),
            end_hour=data.get("endHour"),
            reason=data.get("reason"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "isOpen": self.is_open,
            "startHour": self.start_hour,
            "endHour": self.end_hour,
            "reason": self.reason,
        }


@dataclass
class Shop:
    """Салон"""

    id: Optional[int]
    name: str
    address: Optional[str] = None
    owner_id: Optional[int] = None
    buffer_time: int = 0
    min_booking_notice: int = 0


@dataclass
class Barber:
    """Мастер и его настройки расписания"""

    id: Optional[int]
    shop_id: int
    name: str
    start_hour: Optional[str] = DEFAULT_START_HOUR
    end_hour: Optional[str] = DEFAULT_END_HOUR
    breaks: List[BreakPeriod] = field(default_factory=list)
    weekly_schedule: List[WeeklyOverride] = field(default_factory=list)
    special_hours: List[SpecialHours] = field(default_factory=list)
    is_available: bool = True
    avatar: Optional[str] = None

    def find_special(self, date_str: str) -> Optional[SpecialHours]:
        return next((s for s in self.special_hours if s.date == date_str), None)

    def find_weekly(self, day_name: str) -> Optional[WeeklyOverride]:
        return next((w for w in self.weekly_schedule if w.day == day_name), None)


@dataclass
class User:
    """Клиент платформы"""

    user_id: int
    name: Optional[str] = None
    phone: Optional[str] = None
    role: str = "user"
    no_show_count: int = 0
    cancellation_count: int = 0
    is_flagged: bool = False
    first_seen: Optional[str] = None

    @property
    def total_incidents(self) -> int:
        return (self.no_show_count or 0) + (self.cancellation_count or 0)


@dataclass
class Booking:
    """Запись клиента к мастеру"""

    id: Optional[int]
    shop_id: int
    barber_id: int
    date: str
    start_time: str
    end_time: str
    user_id: Optional[int] = None  # нет у заблокированных слотов и walk-in
    status: str = BookingStatus.UPCOMING
    booking_type: str = "online"
    payment_method: str = "cash"
    original_price: float = 0.0
    discount_amount: float = 0.0
    final_price: float = 0.0
    admin_commission: float = 0.0
    admin_net_revenue: float = 0.0
    barber_net_revenue: float = 0.0
    amount_collected_by: str = "BARBER"
    settlement_status: Optional[str] = PaymentSettlementStatus.PENDING
    settlement_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class Settlement:
    """Расчёт между платформой и салоном за пачку записей"""

    id: Optional[int]
    shop_id: int
    type: str
    amount: float
    status: str = SettlementStatus.GENERATED
    bookings: List[int] = field(default_factory=list)
    date_range_start: Optional[str] = None
    date_range_end: Optional[str] = None
    admin_id: Optional[int] = None
    notes: Optional[str] = None
    transaction_id: Optional[str] = None
    generated_at: Optional[datetime] = None


@dataclass
class SystemConfig:
    """Глобальные настройки платформы (синглтон)"""

    yearly_cancellation_limit: int = DEFAULT_YEARLY_CANCELLATION_LIMIT
    admin_commission_rate: float = DEFAULT_ADMIN_COMMISSION_RATE
    user_discount_rate: float = DEFAULT_USER_DISCOUNT_RATE
    max_cash_bookings_per_month: int = DEFAULT_MAX_CASH_BOOKINGS_PER_MONTH
    is_payment_test_mode: bool = False
    updated_at: Optional[str] = None
