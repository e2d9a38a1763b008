from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from joinery.core.deps import CurrentUser, get_db_session, require_staff
from joinery.db.models.enums import ItemCategory
from joinery.schemas.common import ApiResponse
from joinery.schemas.inventory import (
    ItemCreate,
    ItemDetail,
    ItemRead,
    ItemReservations,
    ReservationRead,
    StockTransactionRead,
)
from joinery.services.audit import AuditService
from joinery.services.items import ItemService
from joinery.services.reservations import ReservationService
from joinery.services.stock import StockTransactionService

router = APIRouter(prefix="/items", tags=["Items"])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ApiResponse[ItemRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create item",
    description="Create an inventory item. A positive opening quantity is recorded as an ADDED transaction.",
)
async def create_item(
    payload: ItemCreate,
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[ItemRead]:
    item = ItemRead.model_validate(await ItemService(session, user.user_id).create(payload))
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="item", entity_id=item.id, action="create", description=f"Created item {item.name}"
    )
    return ApiResponse(message="Item created successfully", data=item, warning=warning)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=ApiResponse[List[ItemRead]],
    summary="List items",
    description="Return items that are not deleted, newest first.",
    dependencies=[Depends(require_staff)],
)
async def list_items(
    session: AsyncSession = Depends(get_db_session),
    category: Optional[ItemCategory] = Query(None, description="Filter by category"),
    supplier_id: Optional[UUID] = Query(None, description="Filter by default supplier"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> ApiResponse[List[ItemRead]]:
    rows = await ItemService(session).list(
        category=category.value if category else None, supplier_id=supplier_id, limit=limit, offset=offset
    )
    return ApiResponse(message="Items retrieved successfully", data=[ItemRead.model_validate(x) for x in rows])


# PUBLIC_INTERFACE
@router.get(
    "/{item_id}",
    response_model=ApiResponse[ItemDetail],
    summary="Get item",
    description="Get an item with the total quantity currently reserved against it.",
    dependencies=[Depends(require_staff)],
)
async def get_item(
    item_id: UUID = Path(..., description="Item id"),
    session: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ItemDetail]:
    item, reserved = await ItemService(session).get_with_reserved(item_id)
    data = ItemDetail.model_validate(item).model_copy(update={"reserved_quantity": reserved})
    return ApiResponse(message="Item retrieved successfully", data=data)


# PUBLIC_INTERFACE
@router.delete(
    "/{item_id}",
    response_model=ApiResponse[dict],
    summary="Delete item",
    description="Soft-delete an item. Its ledger history is kept.",
)
async def delete_item(
    item_id: UUID = Path(..., description="Item id"),
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[dict]:
    await ItemService(session, user.user_id).delete(item_id)
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="item", entity_id=item_id, action="delete", description="Deleted item"
    )
    return ApiResponse(message="Item deleted successfully", data={"id": str(item_id)}, warning=warning)


# PUBLIC_INTERFACE
@router.get(
    "/{item_id}/reservations",
    response_model=ApiResponse[ItemReservations],
    summary="List item reservations",
    description="Reservations held against the item and their total.",
    dependencies=[Depends(require_staff)],
)
async def list_item_reservations(
    item_id: UUID = Path(..., description="Item id"),
    session: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ItemReservations]:
    rows, total = await ReservationService(session).list_for_item(item_id)
    data = ItemReservations(reservations=[ReservationRead.model_validate(x) for x in rows], total_reserved=total)
    return ApiResponse(message="Reservations retrieved successfully", data=data)


# PUBLIC_INTERFACE
@router.get(
    "/{item_id}/stock-transactions",
    response_model=ApiResponse[List[StockTransactionRead]],
    summary="Item stock history",
    description="Ledger rows for the item, newest first.",
    dependencies=[Depends(require_staff)],
)
async def list_item_transactions(
    item_id: UUID = Path(..., description="Item id"),
    session: AsyncSession = Depends(get_db_session),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> ApiResponse[List[StockTransactionRead]]:
    rows = await StockTransactionService(session).list_for_item(item_id, limit=limit, offset=offset)
    return ApiResponse(
        message="Stock transactions retrieved successfully",
        data=[StockTransactionRead.model_validate(x) for x in rows],
    )
