from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from joinery.core.deps import CurrentUser, get_db_session, require_staff
from joinery.schemas.common import ApiResponse
from joinery.schemas.inventory import ReservationCreate, ReservationRead, ReservationUpdate
from joinery.services.audit import AuditService
from joinery.services.reservations import ReservationService

router = APIRouter(prefix="/reservations", tags=["Reservations"])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ApiResponse[ReservationRead],
    status_code=status.HTTP_201_CREATED,
    summary="Reserve stock",
    description="Hold stock for a materials-to-order line. Fails with the shortage when stock is insufficient.",
)
async def create_reservation(
    payload: ReservationCreate,
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[ReservationRead]:
    svc = ReservationService(session, user.user_id)
    data = ReservationRead.model_validate(await svc.create(payload.item_id, payload.mto_item_id, payload.quantity))
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="reservation",
        entity_id=data.id,
        action="create",
        description=f"Reserved {data.quantity} of item {data.item_id}",
    )
    return ApiResponse(message="Item stock reserved successfully", data=data, warning=warning)


# PUBLIC_INTERFACE
@router.get(
    "/{reservation_id}",
    response_model=ApiResponse[ReservationRead],
    summary="Get reservation",
    dependencies=[Depends(require_staff)],
)
async def get_reservation(
    reservation_id: UUID = Path(..., description="Reservation id"),
    session: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ReservationRead]:
    row = await ReservationService(session).get(reservation_id)
    return ApiResponse(message="Reservation retrieved successfully", data=ReservationRead.model_validate(row))


# PUBLIC_INTERFACE
@router.patch(
    "/{reservation_id}",
    response_model=ApiResponse[ReservationRead],
    summary="Update reservation",
    description="Change the reserved quantity (only the difference touches stock) or move it to another line.",
)
async def update_reservation(
    payload: ReservationUpdate,
    reservation_id: UUID = Path(..., description="Reservation id"),
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[ReservationRead]:
    row = await ReservationService(session, user.user_id).update(
        reservation_id, quantity=payload.quantity, mto_item_id=payload.mto_item_id
    )
    data = ReservationRead.model_validate(row)
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="reservation",
        entity_id=reservation_id,
        action="update",
        description=f"Reservation set to {data.quantity}",
    )
    return ApiResponse(message="Reservation updated successfully", data=data, warning=warning)


# PUBLIC_INTERFACE
@router.delete(
    "/{reservation_id}",
    response_model=ApiResponse[ReservationRead],
    summary="Delete reservation",
    description=(
        "Release the reservation back to stock. Forbidden (403) while the materials to order "
        "is FULLY_ORDERED or CLOSED."
    ),
)
async def delete_reservation(
    reservation_id: UUID = Path(..., description="Reservation id"),
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(require_staff),
) -> ApiResponse[ReservationRead]:
    data = ReservationRead.model_validate(await ReservationService(session, user.user_id).delete(reservation_id))
    warning = await AuditService(session, user.user_id).record_or_warn(
        entity_type="reservation",
        entity_id=reservation_id,
        action="delete",
        description=f"Released {data.quantity - data.used_quantity} of item {data.item_id}",
    )
    return ApiResponse(message="Reservation deleted successfully", data=data, warning=warning)
