from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from joinery.core.deps import CurrentUser, get_db_session, require_staff
from joinery.schemas.common import ApiResponse
from joinery.schemas.procurement import SupplierCreate, SupplierRead
from joinery.services.audit import AuditService
from joinery.services.purchasing import SupplierService

router = APIRouter(prefix="/suppliers", tags=["Procurement"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=ApiResponse[List[SupplierRead]],
    summary="List suppliers",
    description="Return suppliers ordered by name.",
    dependencies=[Depends(require_staff)],
)
async def list_suppliers(
    session: AsyncSession = Depends(get_db_session),
    search: Optional[str] = Query(None, description="Filter by name or email (substring)"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> ApiResponse[List[SupplierRead]]:
    rows = await SupplierService(session).list(search=search, limit=limit, offset=offset)
    return ApiResponse(message="Suppliers retrieved successfully", data=[SupplierRead.model_validate(x) for x in rows])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ApiResponse[SupplierRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create supplier",
    description="Create a new supplier.",
)
async def create_supplier(
    payload: SupplierCreate,
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[SupplierRead]:
    supplier = SupplierRead.model_validate(await SupplierService(session, user.user_id).create(payload))
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="supplier", entity_id=supplier.id, action="create", description=f"Created supplier {supplier.name}"
    )
    return ApiResponse(message="Supplier created successfully", data=supplier, warning=warning)
