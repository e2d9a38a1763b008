from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import false, func, select, update

from joinery.db.models.inventory import Item, StockReservation, StockTransaction
from .base import BaseRepository


class ItemRepository(BaseRepository):
    """Repository for items and their on-hand balance."""

    async def get_item(self, item_id: UUID, *, fresh: bool = False) -> Optional[Item]:
        stmt = select(Item).where(Item.id == item_id, Item.is_deleted == false())
        if fresh:
            stmt = stmt.execution_options(**self.fresh)
        return await self.scalar_one_or_none(stmt)

    async def list_items(
        self, *, category: Optional[str], supplier_id: Optional[UUID], limit: int, offset: int
    ) -> List[Item]:
        stmt = select(Item).where(Item.is_deleted == false())
        if category:
            stmt = stmt.where(Item.category == category)
        if supplier_id:
            stmt = stmt.where(Item.supplier_id == supplier_id)
        stmt = stmt.order_by(Item.created_at.desc()).offset(offset).limit(limit)
        res = await self.scalars(stmt.execution_options(**self.fresh))
        return list(res)

    async def apply_delta(self, item_id: UUID, delta: int) -> Optional[int]:
        """
        Atomically add `delta` to the item's quantity unless the result would be
        negative.

        Returns:
            The new quantity, or None when no row matched (item missing, deleted,
            or the guard `quantity + delta >= 0` failed).
        """
        stmt = (
            update(Item)
            .where(
                Item.id == item_id,
                Item.is_deleted == false(),
                Item.quantity + delta >= 0,
            )
            .values(quantity=Item.quantity + delta)
            .returning(Item.quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self.execute(stmt)
        return result.scalar_one_or_none()

    async def soft_delete(self, item_id: UUID) -> bool:
        stmt = (
            update(Item)
            .where(Item.id == item_id, Item.is_deleted == false())
            .values(is_deleted=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.execute(stmt)
        return result.rowcount > 0


class StockTransactionRepository(BaseRepository):
    """Repository for the append-only stock ledger."""

    async def list_for_item(self, item_id: UUID, *, limit: int, offset: int) -> List[StockTransaction]:
        stmt = (
            select(StockTransaction)
            .where(StockTransaction.item_id == item_id)
            .order_by(StockTransaction.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        res = await self.scalars(stmt)
        return list(res)


class ReservationRepository(BaseRepository):
    """Repository for stock reservations."""

    async def get_reservation(self, reservation_id: UUID, *, fresh: bool = False) -> Optional[StockReservation]:
        stmt = select(StockReservation).where(StockReservation.id == reservation_id)
        if fresh:
            stmt = stmt.execution_options(**self.fresh)
        return await self.scalar_one_or_none(stmt)

    async def list_for_item(self, item_id: UUID) -> List[StockReservation]:
        stmt = (
            select(StockReservation)
            .where(StockReservation.item_id == item_id)
            .order_by(StockReservation.created_at.desc())
            .execution_options(**self.fresh)
        )
        res = await self.scalars(stmt)
        return list(res)

    async def list_for_mto_item(self, mto_item_id: UUID) -> List[StockReservation]:
        stmt = (
            select(StockReservation)
            .where(StockReservation.mto_item_id == mto_item_id)
            .order_by(StockReservation.created_at.asc())
            .execution_options(**self.fresh)
        )
        res = await self.scalars(stmt)
        return list(res)

    async def total_reserved(self, item_id: UUID) -> int:
        stmt = select(func.coalesce(func.sum(StockReservation.quantity), 0)).where(
            StockReservation.item_id == item_id
        )
        res = await self.execute(stmt)
        return int(res.scalar_one())
