"""Команды администратора: ручной запуск расчётов и автоотмены"""

import logging

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from services.settlement_service import SettlementService
from services.sweeper_service import MissedBookingSweeper
from utils.helpers import format_money, is_admin

router = Router()


@router.message(Command("settle"))
async def settle(message: Message, settlement_service: SettlementService):
    """Запустить расчёт вручную (админ записывается в расчёты)"""
    if not is_admin(message.from_user.id):
        return

    try:
        result = await settlement_service.run_settlement(admin_id=message.from_user.id)
    except Exception as e:
        logging.error(f"Manual settlement by {message.from_user.id} failed: {e}")
        await message.answer(f"❌ Расчёт не выполнен: {e}")
        return

    await message.answer(f"✅ {result.message}\nСалонов: {result.count}")


@router.message(Command("settle_preview"))
async def settle_preview(message: Message, settlement_service: SettlementService):
    """Что попадёт в ближайший расчёт"""
    if not is_admin(message.from_user.id):
        return

    preview = await settlement_service.preview_settlement()
    if not preview.shop_count:
        await message.answer(f"📭 Нечего рассчитывать (записи до {preview.cutoff})")
        return

    await message.answer(
        f"📋 ПРЕВЬЮ РАСЧЁТА (записи до {preview.cutoff})\n\n"
        f"Салонов: {preview.shop_count}\n"
        f"Записей: {preview.booking_count}\n"
        f"К выплате салонам: {format_money(preview.total_payout)}\n"
        f"К получению от салонов: {format_money(preview.total_collection)}"
    )


@router.message(Command("pending"))
async def pending_balances(message: Message, settlement_service: SettlementService):
    """Текущие несведённые балансы по салонам"""
    if not is_admin(message.from_user.id):
        return

    balances = await settlement_service.get_pending_balances()
    if not balances:
        await message.answer("📭 Несведённых записей нет")
        return

    text = "💼 БАЛАНСЫ САЛОНОВ:\n\n"
    for shop in balances:
        sign = "+" if shop.balance.net >= 0 else "-"
        text += (
            f"Салон #{shop.shop_id}: {sign}{format_money(shop.balance.amount)} "
            f"({shop.booking_count} зап.)\n"
        )

    await message.answer(text)


@router.message(Command("sweep"))
async def sweep(message: Message, sweeper: MissedBookingSweeper):
    """Запустить автоотмену вручную"""
    if not is_admin(message.from_user.id):
        return

    try:
        count = await sweeper.sweep_missed_bookings()
    except Exception as e:
        logging.error(f"Manual sweep by {message.from_user.id} failed: {e}")
        await message.answer(f"❌ Автоотмена не выполнена: {e}")
        return

    await message.answer(f"🧹 Помечено пропущенными: {count}")
