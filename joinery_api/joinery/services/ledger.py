"""
Guarded stock mutation.

StockLedger.apply_delta is the single code path that changes Item.quantity.
Receiving, usage, waste, reservations and stock counts all go through it, so
they share one non-negative guard and every change leaves a ledger row.
"""
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from joinery.core.errors import InsufficientStockError, NotFoundError, ValidationFailedError
from joinery.db.models.enums import StockTransactionType
from joinery.db.models.inventory import StockTransaction
from joinery.repositories.inventory import ItemRepository
from joinery.services.base import BaseService

logger = logging.getLogger(__name__)


class StockLedger(BaseService):
    """Applies signed quantity deltas to items inside the caller's transaction."""

    # PUBLIC_INTERFACE
    async def apply_delta(
        self,
        item_id: UUID,
        delta: int,
        txn_type: StockTransactionType | str,
        *,
        purchase_order_id: Optional[UUID] = None,
        mto_id: Optional[UUID] = None,
        notes: Optional[str] = None,
    ) -> int:
        """
        Add `delta` to the item's quantity and append one ledger row.

        The update is a single conditional statement
        (`... WHERE quantity + delta >= 0`), so concurrent callers can never
        drive the balance negative. Nothing is committed here.

        Returns:
            int: the item's quantity after the change.
        Raises:
            ValidationFailedError: zero delta, or a sign that does not match txn_type.
            NotFoundError: the item does not exist or is deleted.
            InsufficientStockError: the balance cannot cover the decrement.
        """
        txn_type = StockTransactionType(txn_type)
        if delta == 0:
            raise ValidationFailedError("Stock delta must not be zero")
        if (delta > 0) != (txn_type.sign > 0):
            raise ValidationFailedError(
                f"{txn_type.value} transactions cannot apply a delta of {delta}",
                {"type": txn_type.value, "delta": delta},
            )

        items = ItemRepository(self.session)
        new_quantity = await items.apply_delta(item_id, delta)
        if new_quantity is None:
            item = await items.get_item(item_id, fresh=True)
            if item is None:
                raise NotFoundError("Item", item_id)
            logger.info(
                "Rejected %s of %d for item %s; available=%d", txn_type.value, -delta, item_id, item.quantity
            )
            raise InsufficientStockError(item_id, requested=-delta, available=item.quantity)

        await items.add(
            StockTransaction(
                item_id=item_id,
                type=txn_type.value,
                quantity=abs(delta),
                purchase_order_id=purchase_order_id,
                materials_to_order_id=mto_id,
                notes=notes,
                created_by=self.actor,
            )
        )
        logger.debug("Applied %s %+d to item %s -> %d", txn_type.value, delta, item_id, new_quantity)
        return new_quantity
