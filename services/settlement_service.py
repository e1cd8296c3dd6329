"""Сервис расчётов между платформой и салонами

Раз в сутки завершённые и ещё не рассчитанные записи, которые старше
понедельника текущей недели, группируются по салонам. По каждому салону
считается сальдо:

    наличные  -> деньги у барбера, он должен платформе admin_net_revenue
    онлайн    -> деньги у платформы, она должна барберу barber_net_revenue

net = sum(barber_net по онлайн) - sum(admin_net по наличным).
net >= 0 - PAYOUT (платформа платит салону), иначе COLLECTION на |net|.

Все группы пишутся в одной транзакции: либо рассчитаны все салоны, либо ни
один.
"""

import logging
from dataclasses import dataclass, field
from itertools import groupby
from typing import Dict, List, Optional

import aiosqlite

from config import DATABASE_PATH
from database.models import Booking, Settlement, SettlementStatus, SettlementType
from database.repositories.booking_repository import BookingRepository
from database.repositories.settlement_repository import SettlementRepository
from utils.datetime_utils import current_week_start
from utils.helpers import is_cash, round_money

NOTHING_TO_SETTLE = "No pending bookings found."
SETTLEMENT_DONE = "Settlement job complete."


class SettlementConflictError(RuntimeError):
    """Часть записей уже рассчитана параллельным запуском"""


@dataclass
class NetBalance:
    """Сальдо по набору записей"""

    total_admin_net: float
    total_barber_net: float
    net: float

    @property
    def type(self) -> str:
        return SettlementType.PAYOUT if self.net >= 0 else SettlementType.COLLECTION

    @property
    def amount(self) -> float:
        return abs(self.net)


@dataclass
class SettlementResult:
    """Итог запуска расчёта"""

    message: str
    count: int = 0
    settlement_ids: List[int] = field(default_factory=list)


@dataclass
class ShopBalance:
    """Несведённый баланс салона"""

    shop_id: int
    booking_count: int
    balance: NetBalance


@dataclass
class SettlementPreview:
    """Что сделал бы расчёт, если бы запустился сейчас"""

    cutoff: str
    shop_count: int
    booking_count: int
    total_payout: float
    total_collection: float
    shops: List[ShopBalance] = field(default_factory=list)


def calculate_net(bookings: List[Booking]) -> NetBalance:
    """Сальдо платформы и салона по записям"""
    total_admin_net = sum(b.admin_net_revenue or 0 for b in bookings if is_cash(b.payment_method))
    total_barber_net = sum(
        b.barber_net_revenue or 0 for b in bookings if not is_cash(b.payment_method)
    )
    return NetBalance(
        total_admin_net=round_money(total_admin_net),
        total_barber_net=round_money(total_barber_net),
        net=round_money(total_barber_net - total_admin_net),
    )


def group_by_shop(bookings: List[Booking]) -> Dict[int, List[Booking]]:
    """Записи по салонам (по возрастанию id салона)"""
    ordered = sorted(bookings, key=lambda b: b.shop_id)
    return {shop_id: list(items) for shop_id, items in groupby(ordered, key=lambda b: b.shop_id)}


def build_settlement(
    shop_id: int,
    bookings: List[Booking],
    admin_id: Optional[int] = None,
    status: Optional[str] = None,
    notes: Optional[str] = None,
) -> Settlement:
    """Settlement для группы записей одного салона (ещё не сохранён)"""
    balance = calculate_net(bookings)
    dates = [b.date for b in bookings]
    return Settlement(
        id=None,
        shop_id=shop_id,
        admin_id=admin_id,
        type=balance.type,
        amount=balance.amount,
        status=status or SettlementStatus.for_type(balance.type),
        bookings=[b.id for b in bookings],
        date_range_start=min(dates),
        date_range_end=max(dates),
        notes=notes or f"Auto-generated settlement for {len(bookings)} bookings",
    )


async def _persist_group(db: aiosqlite.Connection, settlement: Settlement) -> int:
    """Сохранить расчёт и пометить его записи (внутри открытой транзакции)"""
    settlement_id = await SettlementRepository.insert_settlement(db, settlement)
    updated = await BookingRepository.mark_settled(db, settlement.bookings, settlement_id)
    if updated != len(settlement.bookings):
        raise SettlementConflictError(
            f"Shop {settlement.shop_id}: expected to settle {len(settlement.bookings)} "
            f"bookings, updated {updated}"
        )
    return settlement_id


class SettlementService:
    """Сервис расчётов"""

    def __init__(self, notification_service=None):
        self.notification_service = notification_service

    async def run_settlement(self, admin_id: Optional[int] = None) -> SettlementResult:
        """Расчёт по всем салонам

        Ошибка на любом шаге откатывает всю транзакцию и пробрасывается
        вызывающему (планировщику или команде админа).
        """
        cutoff = current_week_start()
        logging.info(f"Running settlement job (cutoff {cutoff})")

        async with aiosqlite.connect(DATABASE_PATH) as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                eligible = await BookingRepository.fetch_unsettled_completed(
                    db, before_date=cutoff
                )
                if not eligible:
                    await db.rollback()
                    logging.info("No pending bookings found for settlement")
                    return SettlementResult(message=NOTHING_TO_SETTLE, count=0)

                settlement_ids = []
                for shop_id, bookings in group_by_shop(eligible).items():
                    settlement = build_settlement(shop_id, bookings, admin_id=admin_id)
                    settlement_ids.append(await _persist_group(db, settlement))
                    logging.info(
                        f"Shop {shop_id}: {settlement.type} {settlement.amount} "
                        f"for {len(bookings)} bookings"
                    )

                await db.commit()
            except Exception as e:
                await db.rollback()
                logging.error(f"Settlement job failed, rolled back: {e}")
                raise

        result = SettlementResult(
            message=SETTLEMENT_DONE, count=len(settlement_ids), settlement_ids=settlement_ids
        )
        logging.info(f"Processed settlements for {result.count} shops")

        if self.notification_service:
            await self.notification_service.notify_settlement_complete(result)

        return result

    async def preview_settlement(self) -> SettlementPreview:
        """Превью ближайшего расчёта без записи в базу"""
        cutoff = current_week_start()
        eligible = await BookingRepository.get_unsettled_completed(before_date=cutoff)

        shops = [
            ShopBalance(shop_id=shop_id, booking_count=len(items), balance=calculate_net(items))
            for shop_id, items in group_by_shop(eligible).items()
        ]

        return SettlementPreview(
            cutoff=cutoff,
            shop_count=len(shops),
            booking_count=len(eligible),
            total_payout=round_money(
                sum(s.balance.amount for s in shops if s.balance.type == SettlementType.PAYOUT)
            ),
            total_collection=round_money(
                sum(s.balance.amount for s in shops if s.balance.type == SettlementType.COLLECTION)
            ),
            shops=shops,
        )

    async def get_pending_balances(self) -> List[ShopBalance]:
        """Текущие несведённые балансы салонов (без отсечки по неделе)"""
        pending = await BookingRepository.get_unsettled_completed()
        return [
            ShopBalance(shop_id=shop_id, booking_count=len(items), balance=calculate_net(items))
            for shop_id, items in group_by_shop(pending).items()
        ]

    async def settle_shop(
        self, shop_id: int, admin_id: int, booking_ids: Optional[List[int]] = None
    ) -> Optional[Settlement]:
        """Ручной расчёт одного салона

        Деньги считаются переданными сразу, поэтому статус COMPLETED.
        Отсечка по неделе не применяется.

        Returns:
            Сохранённый Settlement или None, если рассчитывать нечего
        """
        async with aiosqlite.connect(DATABASE_PATH) as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                bookings = await BookingRepository.fetch_unsettled_completed(
                    db, shop_id=shop_id, booking_ids=booking_ids
                )
                if not bookings:
                    await db.rollback()
                    logging.info(f"Nothing to settle for shop {shop_id}")
                    return None

                settlement = build_settlement(
                    shop_id,
                    bookings,
                    admin_id=admin_id,
                    status=SettlementStatus.COMPLETED,
                    notes=f"Manual settlement for {len(bookings)} bookings",
                )
                settlement.id = await _persist_group(db, settlement)
                await db.commit()
            except Exception as e:
                await db.rollback()
                logging.error(f"Manual settlement for shop {shop_id} failed: {e}")
                raise

        logging.info(
            f"Admin {admin_id} settled shop {shop_id}: {settlement.type} {settlement.amount}"
        )
        return settlement
