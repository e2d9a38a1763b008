from __future__ import annotations

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from joinery.core.errors import NotFoundError
from joinery.db.models.enums import StockTransactionType
from joinery.db.models.inventory import Item
from joinery.repositories.inventory import ItemRepository, ReservationRepository
from joinery.repositories.procurement import SupplierRepository
from joinery.schemas.inventory import ItemCreate
from joinery.services.base import BaseService
from joinery.services.ledger import StockLedger

logger = logging.getLogger(__name__)


class ItemService(BaseService):
    """Item catalogue. Quantities only change through the stock ledger."""

    def __init__(self, session, actor: Optional[str] = None) -> None:
        super().__init__(session, actor)
        self.items = ItemRepository(session)

    # PUBLIC_INTERFACE
    async def create(self, payload: ItemCreate) -> Item:
        """Create an item; a positive opening quantity is booked as ADDED."""
        async with self.atomic():
            if payload.supplier_id is not None:
                if await SupplierRepository(self.session).get_supplier(payload.supplier_id) is None:
                    raise NotFoundError("Supplier", payload.supplier_id)
            item = Item(
                category=payload.category.value,
                name=payload.name,
                description=payload.description,
                measurement_unit=payload.measurement_unit,
                supplier_reference=payload.supplier_reference,
                supplier_id=payload.supplier_id,
                quantity=0,
            )
            await self.items.add(item)
            await self.items.flush()
            if payload.quantity > 0:
                await StockLedger(self.session, self.actor).apply_delta(
                    item.id, payload.quantity, StockTransactionType.ADDED, notes="Opening balance"
                )
            item_id = item.id
        return await self.get(item_id)

    # PUBLIC_INTERFACE
    async def get(self, item_id: UUID) -> Item:
        item = await self.items.get_item(item_id, fresh=True)
        if item is None:
            raise NotFoundError("Item", item_id)
        return item

    # PUBLIC_INTERFACE
    async def get_with_reserved(self, item_id: UUID) -> Tuple[Item, int]:
        item = await self.get(item_id)
        return item, await ReservationRepository(self.session).total_reserved(item_id)

    # PUBLIC_INTERFACE
    async def list(
        self, *, category: Optional[str] = None, supplier_id: Optional[UUID] = None, limit: int = 100, offset: int = 0
    ) -> List[Item]:
        return await self.items.list_items(category=category, supplier_id=supplier_id, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def delete(self, item_id: UUID) -> None:
        async with self.atomic():
            if not await self.items.soft_delete(item_id):
                raise NotFoundError("Item", item_id)
        logger.info("Soft-deleted item %s", item_id)
