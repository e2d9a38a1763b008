from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from joinery.core.deps import get_db_session, require_staff
from joinery.repositories.audit import AuditLogRepository
from joinery.schemas.audit import AuditLogRead
from joinery.schemas.common import ApiResponse

router = APIRouter(prefix="/audit-log", tags=["Audit"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=ApiResponse[List[AuditLogRead]],
    summary="List audit entries",
    description="Most recent audit entries, optionally filtered by entity.",
    dependencies=[Depends(require_staff)],
)
async def list_audit_entries(
    session: AsyncSession = Depends(get_db_session),
    entity_type: Optional[str] = Query(None, description="e.g. purchase_order, reservation"),
    entity_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> ApiResponse[List[AuditLogRead]]:
    repo = AuditLogRepository(session)
    rows = await repo.list_entries(entity_type=entity_type, entity_id=entity_id, limit=limit, offset=offset)
    return ApiResponse(message="Audit entries retrieved successfully", data=[AuditLogRead.model_validate(x) for x in rows])
