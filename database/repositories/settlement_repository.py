"""Репозиторий для работы с расчётами"""

import json
import logging
from typing import List, Optional

import aiosqlite

from config import DATABASE_PATH
from database.base_repository import BaseRepository
from database.models import Settlement, SettlementStatus, StatusTransitionError
from utils.datetime_utils import business_now


class SettlementRepository(BaseRepository):
    """Хранилище расчётов

    Записи создаются только сервисом расчётов; дальше меняется лишь статус
    (это делает платёжный модуль).
    """

    @staticmethod
    def _row_to_settlement(row) -> Settlement:
        return Settlement(
            id=row["id"],
            shop_id=row["shop_id"],
            admin_id=row["admin_id"],
            type=row["type"],
            amount=row["amount"],
            status=row["status"],
            bookings=json.loads(row["bookings"] or "[]"),
            date_range_start=row["date_range_start"],
            date_range_end=row["date_range_end"],
            notes=row["notes"],
            transaction_id=row["transaction_id"],
            generated_at=row["generated_at"],
        )

    @staticmethod
    async def insert_settlement(db: aiosqlite.Connection, settlement: Settlement) -> int:
        """INSERT в рамках транзакции расчёта"""
        cursor = await db.execute(
            """INSERT INTO settlements
            (shop_id, admin_id, type, amount, status, bookings,
             date_range_start, date_range_end, generated_at, notes)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                settlement.shop_id,
                settlement.admin_id,
                settlement.type,
                settlement.amount,
                settlement.status,
                json.dumps(settlement.bookings),
                settlement.date_range_start,
                settlement.date_range_end,
                business_now().isoformat(),
                settlement.notes,
            ),
        )
        return cursor.lastrowid

    @staticmethod
    async def get_settlement(settlement_id: int) -> Optional[Settlement]:
        """Получить расчёт по ID"""
        try:
            row = await SettlementRepository._execute_query(
                "SELECT * FROM settlements WHERE id=?", (settlement_id,), fetch_one=True
            )
            return SettlementRepository._row_to_settlement(row) if row else None
        except Exception as e:
            logging.error(f"Error getting settlement {settlement_id}: {e}")
            return None

    @staticmethod
    async def list_settlements(shop_id: Optional[int] = None) -> List[Settlement]:
        """Расчёты (новые первыми), опционально по салону"""
        if shop_id is None:
            rows = await SettlementRepository._execute_query(
                "SELECT * FROM settlements ORDER BY generated_at DESC, id DESC",
                fetch_all=True,
            )
        else:
            rows = await SettlementRepository._execute_query(
                """SELECT * FROM settlements WHERE shop_id=?
                ORDER BY generated_at DESC, id DESC""",
                (shop_id,),
                fetch_all=True,
            )
        return [SettlementRepository._row_to_settlement(row) for row in rows or []]

    @staticmethod
    async def count_settlements() -> int:
        return await SettlementRepository._count("settlements")

    @staticmethod
    async def update_status(
        settlement_id: int, new_status: str, transaction_id: Optional[str] = None
    ) -> Settlement:
        """Сменить статус расчёта

        Raises:
            LookupError: расчёта нет
            StatusTransitionError: переход не разрешён
        """
        async with aiosqlite.connect(DATABASE_PATH) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("BEGIN IMMEDIATE")
            try:
                async with db.execute(
                    "SELECT * FROM settlements WHERE id=?", (settlement_id,)
                ) as cursor:
                    row = await cursor.fetchone()

                if not row:
                    raise LookupError(f"Settlement {settlement_id} not found")

                settlement = SettlementRepository._row_to_settlement(row)
                if not SettlementStatus.can_transition(settlement.status, new_status):
                    raise StatusTransitionError(
                        f"Settlement {settlement_id}: {settlement.status} -> {new_status} "
                        "is not allowed"
                    )

                await db.execute(
                    """UPDATE settlements
                    SET status=?, transaction_id=COALESCE(?, transaction_id)
                    WHERE id=?""",
                    (new_status, transaction_id, settlement_id),
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        settlement.status = new_status
        if transaction_id:
            settlement.transaction_id = transaction_id
        logging.info(f"Settlement {settlement_id} status changed to {new_status}")
        return settlement
