from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import false, select, update

from joinery.db.base import utcnow
from joinery.db.models.enums import MTOStatus
from joinery.db.models.materials import MaterialsToOrder, MaterialsToOrderItem
from .base import BaseRepository


class MaterialsToOrderRepository(BaseRepository):
    """Repository for materials-to-order headers and lines."""

    async def get_mto(
        self, mto_id: UUID, *, for_update: bool = False, fresh: bool = False
    ) -> Optional[MaterialsToOrder]:
        stmt = select(MaterialsToOrder).where(
            MaterialsToOrder.id == mto_id, MaterialsToOrder.is_deleted == false()
        )
        if for_update:
            stmt = stmt.with_for_update()
        if fresh or for_update:
            stmt = stmt.execution_options(**self.fresh)
        return await self.scalar_one_or_none(stmt)

    async def list_mtos(
        self, *, status: Optional[str], project_ref: Optional[str], limit: int, offset: int
    ) -> List[MaterialsToOrder]:
        stmt = select(MaterialsToOrder).where(MaterialsToOrder.is_deleted == false())
        if status:
            stmt = stmt.where(MaterialsToOrder.status == status)
        if project_ref:
            stmt = stmt.where(MaterialsToOrder.project_ref == project_ref)
        stmt = stmt.order_by(MaterialsToOrder.created_at.desc()).offset(offset).limit(limit)
        res = await self.scalars(stmt.execution_options(**self.fresh))
        return list(res)

    async def get_line(self, line_id: UUID, *, fresh: bool = False) -> Optional[MaterialsToOrderItem]:
        stmt = select(MaterialsToOrderItem).where(MaterialsToOrderItem.id == line_id)
        if fresh:
            stmt = stmt.execution_options(**self.fresh)
        return await self.scalar_one_or_none(stmt)

    async def list_lines(self, mto_id: UUID) -> List[MaterialsToOrderItem]:
        stmt = (
            select(MaterialsToOrderItem)
            .where(MaterialsToOrderItem.mto_id == mto_id)
            .order_by(MaterialsToOrderItem.created_at.asc())
            .execution_options(**self.fresh)
        )
        res = await self.scalars(stmt)
        return list(res)

    async def mark_used_material_completed(self, mto_id: UUID) -> bool:
        """
        One-way flip of used_material_completed.

        The WHERE clause only matches rows that are still false, so a concurrent
        completion (or a replay) updates nothing and returns False.
        """
        stmt = (
            update(MaterialsToOrder)
            .where(
                MaterialsToOrder.id == mto_id,
                MaterialsToOrder.used_material_completed == false(),
            )
            .values(
                used_material_completed=True,
                status=MTOStatus.CLOSED.value,
                completed_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.execute(stmt)
        return result.rowcount == 1
