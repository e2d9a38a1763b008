from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import false, or_, select

from joinery.db.models.procurement import PurchaseOrder, PurchaseOrderItem, Supplier
from .base import BaseRepository


class SupplierRepository(BaseRepository):
    """Repository for suppliers."""

    async def list_suppliers(self, *, search: Optional[str], limit: int, offset: int) -> List[Supplier]:
        stmt = select(Supplier).where(Supplier.is_deleted == false())
        if search:
            like = f"%{search}%"
            stmt = stmt.where(or_(Supplier.name.ilike(like), Supplier.email.ilike(like)))
        stmt = stmt.order_by(Supplier.name).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def get_supplier(self, supplier_id: UUID) -> Optional[Supplier]:
        stmt = select(Supplier).where(Supplier.id == supplier_id, Supplier.is_deleted == false())
        return await self.scalar_one_or_none(stmt)


class PurchaseOrderRepository(BaseRepository):
    """Repository for purchase orders and their lines."""

    async def list_purchase_orders(
        self,
        *,
        supplier_id: Optional[UUID],
        mto_id: Optional[UUID],
        status: Optional[str],
        limit: int,
        offset: int,
    ) -> List[PurchaseOrder]:
        stmt = select(PurchaseOrder).where(PurchaseOrder.is_deleted == false())
        if supplier_id:
            stmt = stmt.where(PurchaseOrder.supplier_id == supplier_id)
        if mto_id:
            stmt = stmt.where(PurchaseOrder.mto_id == mto_id)
        if status:
            stmt = stmt.where(PurchaseOrder.status == status)
        stmt = stmt.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.order_no)
        stmt = stmt.offset(offset).limit(limit).execution_options(**self.fresh)
        res = await self.scalars(stmt)
        return list(res)

    async def get_purchase_order(
        self, po_id: UUID, *, for_update: bool = False, fresh: bool = False
    ) -> Optional[PurchaseOrder]:
        """
        Load a purchase order with its lines.

        With `for_update` the header row is locked until the transaction ends so
        concurrent receipts against the same order serialize.
        """
        stmt = select(PurchaseOrder).where(PurchaseOrder.id == po_id, PurchaseOrder.is_deleted == false())
        if for_update:
            stmt = stmt.with_for_update()
        if fresh or for_update:
            stmt = stmt.execution_options(**self.fresh)
        return await self.scalar_one_or_none(stmt)

    async def get_by_order_no(self, order_no: str) -> Optional[PurchaseOrder]:
        stmt = select(PurchaseOrder).where(PurchaseOrder.order_no == order_no)
        return await self.scalar_one_or_none(stmt)

    async def list_lines(self, po_id: UUID) -> List[PurchaseOrderItem]:
        stmt = (
            select(PurchaseOrderItem)
            .where(PurchaseOrderItem.order_id == po_id)
            .order_by(PurchaseOrderItem.created_at.asc())
            .execution_options(**self.fresh)
        )
        res = await self.scalars(stmt)
        return list(res)
