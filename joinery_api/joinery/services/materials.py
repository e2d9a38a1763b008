from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from joinery.core.errors import (
    ForbiddenOperationError,
    IrreversibleTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from joinery.db.models.enums import MTOStatus, StockTransactionType
from joinery.db.models.materials import MaterialsToOrder, MaterialsToOrderItem
from joinery.repositories.inventory import ItemRepository, ReservationRepository
from joinery.repositories.materials import MaterialsToOrderRepository
from joinery.schemas.materials import MaterialsToOrderLineCreate
from joinery.services.base import BaseService
from joinery.services.ledger import StockLedger
from joinery.services.status import recompute_mto_status

logger = logging.getLogger(__name__)


def merge_lines(lines: Iterable[MaterialsToOrderLineCreate]) -> List[MaterialsToOrderLineCreate]:
    """Collapse lines for the same item into one, summing quantities."""
    merged: "OrderedDict[UUID, MaterialsToOrderLineCreate]" = OrderedDict()
    for line in lines:
        if line.item_id in merged:
            current = merged[line.item_id]
            merged[line.item_id] = current.model_copy(update={"quantity": current.quantity + line.quantity})
        else:
            merged[line.item_id] = line
    return list(merged.values())


class MaterialsToOrderService(BaseService):
    """Materials-to-order lifecycle: lines, usage and the one-way completion flag."""

    def __init__(self, session, actor: Optional[str] = None) -> None:
        super().__init__(session, actor)
        self.mtos = MaterialsToOrderRepository(session)
        self.items = ItemRepository(session)
        self.reservations = ReservationRepository(session)
        self.ledger = StockLedger(session, actor)

    async def _build_lines(self, lines: Iterable[MaterialsToOrderLineCreate]) -> List[MaterialsToOrderItem]:
        built = []
        for line in merge_lines(lines):
            if await self.items.get_item(line.item_id) is None:
                raise NotFoundError("Item", line.item_id)
            built.append(MaterialsToOrderItem(item_id=line.item_id, quantity=line.quantity, notes=line.notes))
        return built

    async def _get_locked(self, mto_id: UUID) -> MaterialsToOrder:
        mto = await self.mtos.get_mto(mto_id, for_update=True)
        if mto is None:
            raise NotFoundError("Materials to order", mto_id)
        return mto

    # PUBLIC_INTERFACE
    async def get(self, mto_id: UUID) -> MaterialsToOrder:
        mto = await self.mtos.get_mto(mto_id, fresh=True)
        if mto is None:
            raise NotFoundError("Materials to order", mto_id)
        return mto

    # PUBLIC_INTERFACE
    async def list(
        self, *, status: Optional[str] = None, project_ref: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[MaterialsToOrder]:
        return await self.mtos.list_mtos(status=status, project_ref=project_ref, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def create(
        self,
        *,
        project_ref: Optional[str],
        notes: Optional[str],
        items: Iterable[MaterialsToOrderLineCreate],
    ) -> MaterialsToOrder:
        """Create a DRAFT materials-to-order with one line per item."""
        async with self.atomic():
            mto = MaterialsToOrder(
                project_ref=project_ref,
                notes=notes,
                status=MTOStatus.DRAFT.value,
                created_by=self.actor,
                items=await self._build_lines(items),
            )
            await self.mtos.add(mto)
            await self.mtos.flush()
            mto_id = mto.id
        logger.info("Created MTO %s (%s)", mto_id, project_ref or "-")
        return await self.get(mto_id)

    async def _use_material(self, mto: MaterialsToOrder, line: MaterialsToOrderItem, quantity: int) -> None:
        """
        Consume `quantity` for a line, reservations first.

        Reserved stock was already taken off the balance, so it is handed back
        (RELEASED) and immediately consumed (USED); whatever the reservations do
        not cover is taken from free stock.
        """
        if quantity <= 0:
            raise ValidationFailedError("Used quantity must be greater than zero")
        outstanding = line.quantity - line.quantity_used
        if quantity > outstanding:
            raise ValidationFailedError(
                f"Cannot use more than the outstanding quantity for item {line.item_id}",
                {"item_id": str(line.item_id), "requested": quantity, "outstanding": outstanding},
            )

        remaining = quantity
        for reservation in await self.reservations.list_for_mto_item(line.id):
            take = min(reservation.held_quantity, remaining)
            if take <= 0:
                continue
            await self.ledger.apply_delta(
                line.item_id, take, StockTransactionType.RELEASED, mto_id=mto.id, notes="Reservation consumed"
            )
            await self.ledger.apply_delta(line.item_id, -take, StockTransactionType.USED, mto_id=mto.id)
            reservation.used_quantity += take
            remaining -= take
            if remaining == 0:
                break
        if remaining > 0:
            await self.ledger.apply_delta(line.item_id, -remaining, StockTransactionType.USED, mto_id=mto.id)
        line.quantity_used += quantity

    # PUBLIC_INTERFACE
    async def use_material(self, mto_id: UUID, item_id: UUID, quantity: int, notes: Optional[str] = None) -> MaterialsToOrder:
        """Record usage of an item against the MTO line for that item."""
        async with self.atomic():
            mto = await self._get_locked(mto_id)
            if mto.used_material_completed:
                raise ForbiddenOperationError(
                    "Material usage is already completed for this materials to order",
                    {"mto_id": str(mto_id)},
                )
            lines = await self.mtos.list_lines(mto_id)
            line = next((row for row in lines if row.item_id == item_id), None)
            if line is None:
                raise NotFoundError("Materials to order item", item_id)
            await self._use_material(mto, line, quantity)
        return await self.get(mto_id)

    async def _release_leftover_holds(self, mto: MaterialsToOrder, line: MaterialsToOrderItem) -> None:
        """Give back whatever a line's reservations still hold once the line is fully used."""
        for reservation in await self.reservations.list_for_mto_item(line.id):
            held = reservation.held_quantity
            if held <= 0:
                continue
            await self.ledger.apply_delta(
                line.item_id, held, StockTransactionType.RELEASED, mto_id=mto.id, notes="Released on completion"
            )
            if reservation.used_quantity > 0:
                reservation.quantity = reservation.used_quantity
            else:
                await self.reservations.delete(reservation)

    async def _complete(self, mto: MaterialsToOrder) -> None:
        for line in await self.mtos.list_lines(mto.id):
            remaining = line.quantity - line.quantity_used
            if remaining > 0:
                await self._use_material(mto, line, remaining)
        await self.mtos.flush()
        for line in await self.mtos.list_lines(mto.id):
            await self._release_leftover_holds(mto, line)
        await self.mtos.flush()
        if not await self.mtos.mark_used_material_completed(mto.id):
            # Another request completed it between our lock and the update.
            raise IrreversibleTransitionError("materials_to_order", "used_material_completed")

    # PUBLIC_INTERFACE
    async def update(
        self,
        mto_id: UUID,
        *,
        project_ref: Optional[str] = None,
        notes: Optional[str] = None,
        items: Optional[Iterable[MaterialsToOrderLineCreate]] = None,
        used_material_completed: Optional[bool] = None,
    ) -> Tuple[MaterialsToOrder, bool]:
        """
        Patch an MTO.

        Setting `used_material_completed` to true consumes every line's
        outstanding quantity and closes the MTO in the same transaction. It can
        never be set back to false.

        Returns:
            (mto, completed_now)
        """
        completed_now = False
        async with self.atomic():
            mto = await self._get_locked(mto_id)
            if used_material_completed is False and mto.used_material_completed:
                raise IrreversibleTransitionError("materials_to_order", "used_material_completed")

            if project_ref is not None:
                mto.project_ref = project_ref
            if notes is not None:
                mto.notes = notes
            if items is not None:
                await self._replace_lines(mto, items)

            if used_material_completed and not mto.used_material_completed:
                await self._complete(mto)
                completed_now = True

        if completed_now:
            logger.info("MTO %s marked used and closed", mto_id)
        return await self.get(mto_id), completed_now

    async def _replace_lines(self, mto: MaterialsToOrder, items: Iterable[MaterialsToOrderLineCreate]) -> None:
        if mto.status != MTOStatus.DRAFT.value:
            raise ValidationFailedError(
                "Lines can only be replaced while the materials to order is DRAFT",
                {"mto_status": mto.status},
            )
        lines = await self.mtos.list_lines(mto.id)
        if any(row.quantity_used > 0 or row.reservations for row in lines):
            raise ValidationFailedError("Lines with reservations or recorded usage cannot be replaced")
        mto.items = await self._build_lines(items)
        await self.mtos.flush()

    # PUBLIC_INTERFACE
    async def set_quantity_ordered(self, line_id: UUID, quantity_ordered: int) -> Tuple[MaterialsToOrder, MaterialsToOrderItem, bool]:
        """
        Record a manually placed order for one line.

        Returns:
            (mto, line, supplier_fully_ordered) where the flag tells whether this
            change completed ordering for every line of the item's supplier.
        """
        async with self.atomic():
            line = await self.mtos.get_line(line_id, fresh=True)
            if line is None:
                raise NotFoundError("Materials to order item", line_id)
            mto = await self._get_locked(line.mto_id)
            if mto.status == MTOStatus.CLOSED.value:
                raise ForbiddenOperationError(
                    "Ordered quantities cannot change on a closed materials to order",
                    {"mto_id": str(mto.id), "mto_status": mto.status},
                )
            lines = await self.mtos.list_lines(mto.id)
            supplier_id = line.item.supplier_id
            before = _supplier_fully_ordered(lines, supplier_id)

            line.quantity_ordered = max(0, quantity_ordered)
            line.ordered_by_id = self.actor
            await recompute_mto_status(self.session, mto.id)
            after = _supplier_fully_ordered(await self.mtos.list_lines(mto.id), supplier_id)
            mto_id = mto.id

        mto = await self.get(mto_id)
        line = next(row for row in mto.items if row.id == line_id)
        return mto, line, (supplier_id is not None and after and not before)

    # PUBLIC_INTERFACE
    async def delete(self, mto_id: UUID) -> MaterialsToOrder:
        """Soft-delete an MTO, handing unused reservation holds back to stock."""
        async with self.atomic():
            mto = await self._get_locked(mto_id)
            if mto.status == MTOStatus.CLOSED.value or mto.used_material_completed:
                raise ForbiddenOperationError(
                    "A closed materials to order cannot be deleted",
                    {"mto_id": str(mto_id), "mto_status": mto.status},
                )
            for line in await self.mtos.list_lines(mto_id):
                for reservation in list(line.reservations):
                    held = reservation.held_quantity
                    if held > 0:
                        await self.ledger.apply_delta(
                            reservation.item_id,
                            held,
                            StockTransactionType.RELEASED,
                            mto_id=mto_id,
                            notes="Materials to order deleted",
                        )
                    await self.reservations.delete(reservation)
            mto.is_deleted = True
        logger.info("Deleted MTO %s", mto_id)
        return mto


def _supplier_fully_ordered(lines: Iterable[MaterialsToOrderItem], supplier_id: Optional[UUID]) -> bool:
    relevant = [row for row in lines if supplier_id is not None and row.item.supplier_id == supplier_id]
    return bool(relevant) and all(row.ordered_quantity >= row.quantity for row in relevant)
