from __future__ import annotations

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from joinery.core.errors import ForbiddenOperationError, NotFoundError, ValidationFailedError
from joinery.db.models.enums import MTO_LOCKED_STATUSES, MTOStatus, StockTransactionType
from joinery.db.models.inventory import StockReservation
from joinery.db.models.materials import MaterialsToOrder, MaterialsToOrderItem
from joinery.repositories.inventory import ItemRepository, ReservationRepository
from joinery.repositories.materials import MaterialsToOrderRepository
from joinery.services.base import BaseService
from joinery.services.ledger import StockLedger
from joinery.services.status import recompute_mto_status

logger = logging.getLogger(__name__)


class ReservationService(BaseService):
    """
    Holds stock back for materials-to-order lines.

    A reservation lowers Item.quantity when it is created (RESERVED) and gives
    the held part back when it shrinks or is removed (RELEASED).
    """

    def __init__(self, session, actor: Optional[str] = None) -> None:
        super().__init__(session, actor)
        self.reservations = ReservationRepository(session)
        self.mtos = MaterialsToOrderRepository(session)
        self.ledger = StockLedger(session, actor)

    async def _load_line(self, mto_item_id: UUID) -> Tuple[MaterialsToOrderItem, MaterialsToOrder]:
        line = await self.mtos.get_line(mto_item_id, fresh=True)
        if line is None:
            raise NotFoundError("Materials to order item", mto_item_id)
        mto = await self.mtos.get_mto(line.mto_id, for_update=True)
        if mto is None:
            raise NotFoundError("Materials to order", line.mto_id)
        return line, mto

    @staticmethod
    def _ensure_open(mto: MaterialsToOrder) -> None:
        if mto.status == MTOStatus.CLOSED.value or mto.used_material_completed:
            raise ForbiddenOperationError(
                "Reservations cannot be changed on a closed materials to order",
                {"mto_id": str(mto.id), "mto_status": mto.status},
            )

    # PUBLIC_INTERFACE
    async def get(self, reservation_id: UUID) -> StockReservation:
        reservation = await self.reservations.get_reservation(reservation_id, fresh=True)
        if reservation is None:
            raise NotFoundError("Reservation", reservation_id)
        return reservation

    # PUBLIC_INTERFACE
    async def list_for_item(self, item_id: UUID) -> Tuple[List[StockReservation], int]:
        """Reservations held against an item and their total quantity."""
        if await ItemRepository(self.session).get_item(item_id) is None:
            raise NotFoundError("Item", item_id)
        rows = await self.reservations.list_for_item(item_id)
        return rows, sum(r.quantity for r in rows)

    # PUBLIC_INTERFACE
    async def create(self, item_id: UUID, mto_item_id: UUID, quantity: int) -> StockReservation:
        """Reserve `quantity` of the item for an MTO line; fails when stock is short."""
        if quantity <= 0:
            raise ValidationFailedError("Reservation quantity must be greater than zero")

        async with self.atomic():
            if await ItemRepository(self.session).get_item(item_id) is None:
                raise NotFoundError("Item", item_id)
            line, mto = await self._load_line(mto_item_id)
            self._ensure_open(mto)
            if line.item_id != item_id:
                raise ValidationFailedError(
                    "Reserved item does not match the materials to order line",
                    {"item_id": str(item_id), "line_item_id": str(line.item_id)},
                )

            await self.ledger.apply_delta(
                item_id, -quantity, StockTransactionType.RESERVED, mto_id=mto.id
            )
            reservation = StockReservation(
                item_id=item_id, mto_item_id=mto_item_id, quantity=quantity, user_id=self.actor
            )
            await self.reservations.add(reservation)
            await recompute_mto_status(self.session, mto.id)
            reservation_id = reservation.id

        logger.info("Reserved %d of item %s for MTO line %s", quantity, item_id, mto_item_id)
        return await self.get(reservation_id)

    # PUBLIC_INTERFACE
    async def update(
        self,
        reservation_id: UUID,
        *,
        quantity: Optional[int] = None,
        mto_item_id: Optional[UUID] = None,
    ) -> StockReservation:
        """
        Change the reserved quantity and/or move the reservation to another line.

        Only the difference between old and new quantity touches stock: growth is
        RESERVED (and may fail for lack of stock), shrinkage is RELEASED.
        """
        if quantity is not None and quantity <= 0:
            raise ValidationFailedError("Reservation quantity must be greater than zero")

        async with self.atomic():
            reservation = await self.reservations.get_reservation(reservation_id, fresh=True)
            if reservation is None:
                raise NotFoundError("Reservation", reservation_id)
            _, mto = await self._load_line(reservation.mto_item_id)
            self._ensure_open(mto)
            affected = {mto.id}

            if mto_item_id is not None and mto_item_id != reservation.mto_item_id:
                if reservation.used_quantity > 0:
                    raise ValidationFailedError(
                        "A partly consumed reservation cannot be moved to another line",
                        {"used_quantity": reservation.used_quantity},
                    )
                target, target_mto = await self._load_line(mto_item_id)
                self._ensure_open(target_mto)
                if target.item_id != reservation.item_id:
                    raise ValidationFailedError(
                        "Reserved item does not match the materials to order line",
                        {"item_id": str(reservation.item_id), "line_item_id": str(target.item_id)},
                    )
                reservation.mto_item_id = mto_item_id
                affected.add(target_mto.id)

            if quantity is not None and quantity != reservation.quantity:
                if quantity < reservation.used_quantity:
                    raise ValidationFailedError(
                        "Reservation quantity cannot be lower than the quantity already used",
                        {"quantity": quantity, "used_quantity": reservation.used_quantity},
                    )
                delta = quantity - reservation.quantity
                if delta > 0:
                    await self.ledger.apply_delta(
                        reservation.item_id, -delta, StockTransactionType.RESERVED, mto_id=mto.id
                    )
                else:
                    await self.ledger.apply_delta(
                        reservation.item_id, -delta, StockTransactionType.RELEASED, mto_id=mto.id
                    )
                reservation.quantity = quantity

            for affected_id in affected:
                await recompute_mto_status(self.session, affected_id)

        return await self.get(reservation_id)

    # PUBLIC_INTERFACE
    async def delete(self, reservation_id: UUID) -> StockReservation:
        """
        Remove a reservation and give its unused part back to stock.

        Forbidden once the owning MTO is FULLY_ORDERED or CLOSED.
        """
        async with self.atomic():
            reservation = await self.reservations.get_reservation(reservation_id, fresh=True)
            if reservation is None:
                raise NotFoundError("Reservation", reservation_id)
            _, mto = await self._load_line(reservation.mto_item_id)
            if mto.status in MTO_LOCKED_STATUSES:
                raise ForbiddenOperationError(
                    f"Cannot delete reservation while materials to order is {mto.status}",
                    {
                        "mto_id": str(mto.id),
                        "mto_status": mto.status,
                        "allowed_statuses": [MTOStatus.DRAFT.value, MTOStatus.PARTIALLY_ORDERED.value],
                    },
                )

            held = reservation.held_quantity
            if held > 0:
                await self.ledger.apply_delta(
                    reservation.item_id, held, StockTransactionType.RELEASED, mto_id=mto.id
                )
            await self.reservations.delete(reservation)
            await recompute_mto_status(self.session, mto.id)

        logger.info("Released reservation %s (%d returned to stock)", reservation_id, held)
        return reservation
