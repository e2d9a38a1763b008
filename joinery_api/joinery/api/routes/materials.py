from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from joinery.core.deps import CurrentUser, get_db_session, require_staff
from joinery.db.models.enums import MTOStatus
from joinery.schemas.common import ApiResponse
from joinery.schemas.materials import (
    MaterialsToOrderCreate,
    MaterialsToOrderLineOrderUpdate,
    MaterialsToOrderLineRead,
    MaterialsToOrderRead,
    MaterialsToOrderUpdate,
)
from joinery.services.audit import AuditService
from joinery.services.materials import MaterialsToOrderService
from joinery.services.notifications import NotificationDispatcher

router = APIRouter(prefix="/materials-to-order", tags=["Materials To Order"])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ApiResponse[MaterialsToOrderRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create materials to order",
    description="Create a DRAFT materials-to-order. Lines for the same item are merged.",
)
async def create_mto(
    payload: MaterialsToOrderCreate,
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[MaterialsToOrderRead]:
    mto = await MaterialsToOrderService(session, user.user_id).create(
        project_ref=payload.project_ref, notes=payload.notes, items=payload.items
    )
    data = MaterialsToOrderRead.model_validate(mto)
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="materials_to_order",
        entity_id=data.id,
        action="create",
        description=f"Created materials to order with {len(data.items)} line(s)",
    )
    await NotificationDispatcher(user_id=user.user_id).dispatch(
        "materials_to_order.created", {"id": data.id, "project_ref": data.project_ref}
    )
    return ApiResponse(message="Materials to order created successfully", data=data, warning=warning)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=ApiResponse[List[MaterialsToOrderRead]],
    summary="List materials to order",
    dependencies=[Depends(require_staff)],
)
async def list_mtos(
    session: AsyncSession = Depends(get_db_session),
    status_filter: Optional[MTOStatus] = Query(None, alias="status", description="Filter by status"),
    project_ref: Optional[str] = Query(None, description="Filter by project reference"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> ApiResponse[List[MaterialsToOrderRead]]:
    rows = await MaterialsToOrderService(session).list(
        status=status_filter.value if status_filter else None, project_ref=project_ref, limit=limit, offset=offset
    )
    return ApiResponse(
        message="Materials to order retrieved successfully",
        data=[MaterialsToOrderRead.model_validate(x) for x in rows],
    )


# PUBLIC_INTERFACE
@router.get(
    "/{mto_id}",
    response_model=ApiResponse[MaterialsToOrderRead],
    summary="Get materials to order",
    dependencies=[Depends(require_staff)],
)
async def get_mto(
    mto_id: UUID = Path(..., description="Materials to order id"),
    session: AsyncSession = Depends(get_db_session),
) -> ApiResponse[MaterialsToOrderRead]:
    mto = await MaterialsToOrderService(session).get(mto_id)
    return ApiResponse(message="Materials to order retrieved successfully", data=MaterialsToOrderRead.model_validate(mto))


# PUBLIC_INTERFACE
@router.patch(
    "/{mto_id}",
    response_model=ApiResponse[MaterialsToOrderRead],
    summary="Update materials to order",
    description=(
        "Update notes or lines. Setting used_material_completed=true uses up every line's "
        "outstanding quantity and closes the materials to order; it cannot be reverted (403)."
    ),
)
async def update_mto(
    payload: MaterialsToOrderUpdate,
    mto_id: UUID = Path(..., description="Materials to order id"),
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[MaterialsToOrderRead]:
    mto, completed = await MaterialsToOrderService(session, user.user_id).update(
        mto_id,
        project_ref=payload.project_ref,
        notes=payload.notes,
        items=payload.items,
        used_material_completed=payload.used_material_completed,
    )
    data = MaterialsToOrderRead.model_validate(mto)
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="materials_to_order",
        entity_id=mto_id,
        action="complete" if completed else "update",
        description="Marked material as used" if completed else "Updated materials to order",
    )
    if completed:
        await NotificationDispatcher(user_id=user.user_id).dispatch(
            "materials_to_order.completed", {"id": data.id, "project_ref": data.project_ref}
        )
    return ApiResponse(message="Materials to order updated successfully", data=data, warning=warning)


# PUBLIC_INTERFACE
@router.delete(
    "/{mto_id}",
    response_model=ApiResponse[dict],
    summary="Delete materials to order",
    description="Soft-delete; unused reservations are released back to stock. Forbidden once CLOSED.",
)
async def delete_mto(
    mto_id: UUID = Path(..., description="Materials to order id"),
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[dict]:
    await MaterialsToOrderService(session, user.user_id).delete(mto_id)
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="materials_to_order", entity_id=mto_id, action="delete", description="Deleted materials to order"
    )
    return ApiResponse(message="Materials to order deleted successfully", data={"id": str(mto_id)}, warning=warning)


# PUBLIC_INTERFACE
@router.patch(
    "/items/{line_id}",
    response_model=ApiResponse[MaterialsToOrderLineRead],
    summary="Set ordered quantity",
    description="Record a quantity ordered outside purchase orders for one line and recompute the status.",
)
async def set_line_quantity_ordered(
    payload: MaterialsToOrderLineOrderUpdate,
    line_id: UUID = Path(..., description="Materials to order line id"),
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[MaterialsToOrderLineRead]:
    mto, line, supplier_done = await MaterialsToOrderService(session, user.user_id).set_quantity_ordered(
        line_id, payload.quantity_ordered
    )
    data = MaterialsToOrderLineRead.model_validate(line)
    supplier_id = line.item.supplier_id
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="materials_to_order_item",
        entity_id=line_id,
        action="update",
        description=f"Ordered quantity set to {data.quantity_ordered}",
    )
    if supplier_done:
        await NotificationDispatcher(user_id=user.user_id).dispatch(
            "materials_to_order.supplier_ordered", {"mto_id": data.mto_id, "supplier_id": supplier_id}
        )
    return ApiResponse(message="Ordered quantity updated successfully", data=data, warning=warning)
