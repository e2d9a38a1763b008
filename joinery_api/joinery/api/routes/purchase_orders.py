from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from joinery.core.deps import CurrentUser, get_db_session, require_staff
from joinery.db.models.enums import POStatus
from joinery.schemas.common import ApiResponse
from joinery.schemas.procurement import (
    PurchaseOrderCreate,
    PurchaseOrderRead,
    PurchaseOrderUpdate,
    ReceiveRequest,
)
from joinery.services.audit import AuditService
from joinery.services.notifications import NotificationDispatcher
from joinery.services.purchasing import PurchaseOrderService

router = APIRouter(prefix="/purchase-orders", tags=["Procurement"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=ApiResponse[List[PurchaseOrderRead]],
    summary="List purchase orders",
    description="Return purchase orders with their lines, newest first.",
    dependencies=[Depends(require_staff)],
)
async def list_purchase_orders(
    session: AsyncSession = Depends(get_db_session),
    supplier_id: Optional[UUID] = Query(None, description="Filter by supplier id"),
    mto_id: Optional[UUID] = Query(None, description="Filter by materials to order id"),
    status_filter: Optional[POStatus] = Query(None, alias="status", description="Filter by status"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> ApiResponse[List[PurchaseOrderRead]]:
    rows = await PurchaseOrderService(session).list(
        supplier_id=supplier_id,
        mto_id=mto_id,
        status=status_filter.value if status_filter else None,
        limit=limit,
        offset=offset,
    )
    return ApiResponse(
        message="Purchase orders retrieved successfully",
        data=[PurchaseOrderRead.model_validate(x) for x in rows],
    )


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ApiResponse[PurchaseOrderRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create purchase order",
    description=(
        "Create a purchase order with lines. When mto_id is given the ordered quantities are "
        "credited to the materials to order and its status is recomputed."
    ),
)
async def create_purchase_order(
    payload: PurchaseOrderCreate,
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[PurchaseOrderRead]:
    po = await PurchaseOrderService(session, user.user_id).create(
        order_no=payload.order_no,
        supplier_id=payload.supplier_id,
        items=payload.items,
        mto_id=payload.mto_id,
        notes=payload.notes,
        total_amount=payload.total_amount,
    )
    data = PurchaseOrderRead.model_validate(po)
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="purchase_order", entity_id=data.id, action="create", description=f"Created {data.order_no}"
    )
    await NotificationDispatcher(user_id=user.user_id).dispatch(
        "purchase_order.created", {"id": data.id, "order_no": data.order_no, "mto_id": data.mto_id}
    )
    return ApiResponse(message="Purchase order created successfully", data=data, warning=warning)


# PUBLIC_INTERFACE
@router.get(
    "/{po_id}",
    response_model=ApiResponse[PurchaseOrderRead],
    summary="Get purchase order",
    dependencies=[Depends(require_staff)],
)
async def get_purchase_order(
    po_id: UUID = Path(..., description="Purchase order id"),
    session: AsyncSession = Depends(get_db_session),
) -> ApiResponse[PurchaseOrderRead]:
    po = await PurchaseOrderService(session).get(po_id)
    return ApiResponse(message="Purchase order retrieved successfully", data=PurchaseOrderRead.model_validate(po))


# PUBLIC_INTERFACE
@router.patch(
    "/{po_id}",
    response_model=ApiResponse[PurchaseOrderRead],
    summary="Update purchase order",
    description="Update notes, amount or lines, or cancel. Other statuses are derived from receipts.",
)
async def update_purchase_order(
    payload: PurchaseOrderUpdate,
    po_id: UUID = Path(..., description="Purchase order id"),
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[PurchaseOrderRead]:
    po = await PurchaseOrderService(session, user.user_id).update(
        po_id,
        notes=payload.notes,
        total_amount=payload.total_amount,
        status=payload.status.value if payload.status else None,
        items=payload.items,
    )
    data = PurchaseOrderRead.model_validate(po)
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="purchase_order", entity_id=po_id, action="update", description=f"Updated {data.order_no}"
    )
    return ApiResponse(message="Purchase order updated successfully", data=data, warning=warning)


# PUBLIC_INTERFACE
@router.delete(
    "/{po_id}",
    response_model=ApiResponse[dict],
    summary="Delete purchase order",
    description="Soft-delete a purchase order. Forbidden (403) once goods were received.",
)
async def delete_purchase_order(
    po_id: UUID = Path(..., description="Purchase order id"),
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[dict]:
    await PurchaseOrderService(session, user.user_id).delete(po_id)
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="purchase_order", entity_id=po_id, action="delete", description="Deleted purchase order"
    )
    return ApiResponse(message="Purchase order deleted successfully", data={"id": str(po_id)}, warning=warning)


# PUBLIC_INTERFACE
@router.post(
    "/{po_id}/receive",
    response_model=ApiResponse[PurchaseOrderRead],
    summary="Receive goods",
    description=(
        "Book received quantities per item. Over-receipt on any line rejects the whole receipt "
        "with the remaining quantity; the status becomes PARTIALLY_RECEIVED or FULLY_RECEIVED."
    ),
)
async def receive_purchase_order(
    payload: ReceiveRequest,
    po_id: UUID = Path(..., description="Purchase order id"),
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[PurchaseOrderRead]:
    po = await PurchaseOrderService(session, user.user_id).receive(po_id, payload.items)
    data = PurchaseOrderRead.model_validate(po)
    received = sum(line.quantity for line in payload.items)
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="purchase_order",
        entity_id=po_id,
        action="receive",
        description=f"Received {received} unit(s) on {data.order_no}",
    )
    await NotificationDispatcher(user_id=user.user_id).dispatch(
        "purchase_order.received", {"id": data.id, "order_no": data.order_no, "status": data.status}
    )
    return ApiResponse(message="Items received successfully", data=data, warning=warning)
