from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select

from joinery.db.models.audit import AuditLog
from .base import BaseRepository


class AuditLogRepository(BaseRepository):
    """Repository for audit log entries."""

    async def list_entries(
        self, *, entity_type: Optional[str], entity_id: Optional[str], limit: int, offset: int
    ) -> List[AuditLog]:
        stmt = select(AuditLog)
        if entity_type:
            stmt = stmt.where(AuditLog.entity_type == entity_type)
        if entity_id:
            stmt = stmt.where(AuditLog.entity_id == entity_id)
        stmt = stmt.order_by(AuditLog.created_at.desc()).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)
