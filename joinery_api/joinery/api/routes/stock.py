from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from joinery.core.deps import CurrentUser, get_db_session, require_staff
from joinery.schemas.common import ApiResponse
from joinery.schemas.inventory import StockTallyRequest, StockTallyResult, StockTransactionCreate
from joinery.services.audit import AuditService
from joinery.services.items import ItemService
from joinery.services.notifications import NotificationDispatcher
from joinery.services.stock import StockTransactionService

router = APIRouter(tags=["Stock"])


# PUBLIC_INTERFACE
@router.post(
    "/stock-transactions",
    response_model=ApiResponse[dict],
    status_code=status.HTTP_201_CREATED,
    summary="Create stock transaction",
    description=(
        "Record ADDED (goods receipt, requires purchase_order_id), USED (requires "
        "materials_to_order_id) or WASTED stock."
    ),
)
async def create_stock_transaction(
    payload: StockTransactionCreate,
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[dict]:
    reference = await StockTransactionService(session, user.user_id).record(payload)
    item = await ItemService(session).get(payload.item_id)
    data = {
        "item_id": str(payload.item_id),
        "type": payload.type.value,
        "quantity": payload.quantity,
        "reference_id": str(reference) if reference else None,
        "item_quantity": item.quantity,
    }
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="stock_transaction",
        entity_id=payload.item_id,
        action=payload.type.value.lower(),
        description=f"{payload.type.value} {payload.quantity} of item {payload.item_id}",
    )
    await NotificationDispatcher(user_id=user.user_id).dispatch("stock_transaction.created", data)
    return ApiResponse(message="Stock transaction recorded successfully", data=data, warning=warning)


# PUBLIC_INTERFACE
@router.post(
    "/stock-tally",
    response_model=ApiResponse[StockTallyResult],
    summary="Stock tally",
    description=(
        "Set counted quantities. Surpluses are booked as ADDED and shortfalls as WASTED; "
        "each item is processed independently and failures are reported per item."
    ),
)
async def stock_tally(
    payload: StockTallyRequest,
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[StockTallyResult]:
    result = await StockTransactionService(session, user.user_id).tally(payload.items)
    warning = None
    if result.updated:
        warning = await AuditService(session, user.user_id).record_or_warn(
            entity_type="stock_tally",
            entity_id=None,
            action="update",
            description=f"Stock tally adjusted {len(result.updated)} item(s)",
        )
    return ApiResponse(message="Stock tally processed", data=result, warning=warning)
