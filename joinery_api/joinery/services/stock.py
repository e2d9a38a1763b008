"""
Stock movements requested over HTTP: manual transactions and stock counts.

Both delegate the actual balance change to joinery.services.ledger.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional
from uuid import UUID

from joinery.core.errors import NotFoundError, ServiceError, ValidationFailedError
from joinery.db.models.enums import StockTransactionType
from joinery.repositories.inventory import ItemRepository, StockTransactionRepository
from joinery.schemas.inventory import (
    StockTallyError,
    StockTallyLine,
    StockTallyResult,
    StockTallySummary,
    StockTallyUpdate,
    StockTransactionCreate,
)
from joinery.schemas.procurement import ReceiveLine
from joinery.services.base import BaseService
from joinery.services.ledger import StockLedger
from joinery.services.materials import MaterialsToOrderService
from joinery.services.purchasing import PurchaseOrderService

logger = logging.getLogger(__name__)


class StockTransactionService(BaseService):
    """Entry point for ADDED / USED / WASTED movements and stock tallies."""

    # PUBLIC_INTERFACE
    async def record(self, payload: StockTransactionCreate) -> Optional[UUID]:
        """
        Record a manual stock movement.

        ADDED is a goods receipt on the referenced purchase order, USED is usage
        against the referenced materials-to-order; both go through their owning
        service so receipt and usage rules apply. WASTED only lowers the balance.

        Returns:
            The purchase order or materials-to-order id the movement was booked on.
        """
        if payload.quantity <= 0:
            raise ValidationFailedError("Quantity must be greater than zero")
        txn_type = StockTransactionType(payload.type)

        if txn_type == StockTransactionType.ADDED:
            if payload.purchase_order_id is None:
                raise ValidationFailedError("purchase_order_id is required for ADDED transactions")
            await PurchaseOrderService(self.session, self.actor).receive(
                payload.purchase_order_id,
                [ReceiveLine(item_id=payload.item_id, quantity=payload.quantity, notes=payload.notes)],
            )
            return payload.purchase_order_id

        if txn_type == StockTransactionType.USED:
            if payload.materials_to_order_id is None:
                raise ValidationFailedError("materials_to_order_id is required for USED transactions")
            await MaterialsToOrderService(self.session, self.actor).use_material(
                payload.materials_to_order_id, payload.item_id, payload.quantity, payload.notes
            )
            return payload.materials_to_order_id

        if txn_type == StockTransactionType.WASTED:
            async with self.atomic():
                await StockLedger(self.session, self.actor).apply_delta(
                    payload.item_id, -payload.quantity, StockTransactionType.WASTED, notes=payload.notes
                )
            return None

        raise ValidationFailedError(f"Unsupported transaction type: {txn_type.value}")

    # PUBLIC_INTERFACE
    async def list_for_item(self, item_id: UUID, *, limit: int = 100, offset: int = 0):
        if await ItemRepository(self.session).get_item(item_id) is None:
            raise NotFoundError("Item", item_id)
        return await StockTransactionRepository(self.session).list_for_item(item_id, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def tally(self, lines: Iterable[StockTallyLine]) -> StockTallyResult:
        """
        Reconcile counted quantities with the book balance.

        Each line is its own transaction: a surplus is booked as ADDED, a
        shortfall as WASTED. Failures are collected per line and do not stop
        the remaining lines.
        """
        items = ItemRepository(self.session)
        ledger = StockLedger(self.session, self.actor)
        updated: List[StockTallyUpdate] = []
        errors: List[StockTallyError] = []
        unchanged = 0
        total = 0

        for line in lines:
            total += 1
            try:
                async with self.atomic():
                    item = await items.get_item(line.item_id, fresh=True)
                    if item is None:
                        raise NotFoundError("Item", line.item_id)
                    difference = line.quantity - item.quantity
                    if difference == 0:
                        unchanged += 1
                        continue
                    txn_type = StockTransactionType.ADDED if difference > 0 else StockTransactionType.WASTED
                    await ledger.apply_delta(
                        line.item_id, difference, txn_type, notes=line.notes or "Stock tally adjustment"
                    )
                updated.append(
                    StockTallyUpdate(
                        item_id=line.item_id,
                        previous_quantity=line.quantity - difference,
                        counted_quantity=line.quantity,
                        difference=difference,
                        type=txn_type.value,
                    )
                )
            except ServiceError as exc:
                logger.warning("Stock tally failed for item %s: %s", line.item_id, exc.message)
                errors.append(StockTallyError(item_id=line.item_id, message=exc.message))

        return StockTallyResult(
            updated=updated,
            errors=errors,
            summary=StockTallySummary(
                total=total, updated=len(updated), unchanged=unchanged, failed=len(errors)
            ),
        )
