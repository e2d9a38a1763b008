from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from joinery.core.errors import (
    ForbiddenOperationError,
    NotFoundError,
    OverReceiveError,
    ValidationFailedError,
)
from joinery.db.base import utcnow
from joinery.db.models.enums import POStatus, StockTransactionType
from joinery.db.models.procurement import PurchaseOrder, PurchaseOrderItem, Supplier
from joinery.repositories.inventory import ItemRepository
from joinery.repositories.materials import MaterialsToOrderRepository
from joinery.repositories.procurement import PurchaseOrderRepository, SupplierRepository
from joinery.schemas.procurement import PurchaseOrderLineCreate, ReceiveLine, SupplierCreate
from joinery.services.base import BaseService
from joinery.services.ledger import StockLedger
from joinery.services.status import recompute_mto_status, recompute_po_status

logger = logging.getLogger(__name__)


@dataclass
class ReceiptLine:
    """Aggregated quantity received for one item in a single receipt."""
    item_id: UUID
    quantity: int
    notes: List[str] = field(default_factory=list)


def aggregate_receipt(lines: Iterable[ReceiveLine]) -> List[ReceiptLine]:
    """
    Sum receipt lines per item, dropping zero quantities.

    Raises:
        ValidationFailedError: a negative quantity, or nothing left to receive.
    """
    merged: "OrderedDict[UUID, ReceiptLine]" = OrderedDict()
    for line in lines:
        if line.quantity < 0:
            raise ValidationFailedError(
                "Received quantity cannot be negative", {"item_id": str(line.item_id), "quantity": line.quantity}
            )
        if line.quantity == 0:
            continue
        entry = merged.setdefault(line.item_id, ReceiptLine(item_id=line.item_id, quantity=0))
        entry.quantity += line.quantity
        if line.notes:
            entry.notes.append(line.notes)
    if not merged:
        raise ValidationFailedError("No quantities to receive")
    return list(merged.values())


class SupplierService(BaseService):
    """Supplier master data."""

    # PUBLIC_INTERFACE
    async def create(self, payload: SupplierCreate) -> Supplier:
        repo = SupplierRepository(self.session)
        async with self.atomic():
            row = Supplier(name=payload.name, email=payload.email, phone=payload.phone, address=payload.address or {})
            await repo.add(row)
        return row

    # PUBLIC_INTERFACE
    async def list(self, *, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[Supplier]:
        return await SupplierRepository(self.session).list_suppliers(search=search, limit=limit, offset=offset)


class PurchaseOrderService(BaseService):
    """Purchase orders: creation against an MTO, goods receipt and cancellation."""

    def __init__(self, session, actor: Optional[str] = None) -> None:
        super().__init__(session, actor)
        self.orders = PurchaseOrderRepository(session)
        self.suppliers = SupplierRepository(session)
        self.items = ItemRepository(session)
        self.mtos = MaterialsToOrderRepository(session)
        self.ledger = StockLedger(session, actor)

    # PUBLIC_INTERFACE
    async def get(self, po_id: UUID) -> PurchaseOrder:
        po = await self.orders.get_purchase_order(po_id, fresh=True)
        if po is None:
            raise NotFoundError("Purchase order", po_id)
        return po

    # PUBLIC_INTERFACE
    async def list(
        self,
        *,
        supplier_id: Optional[UUID] = None,
        mto_id: Optional[UUID] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[PurchaseOrder]:
        return await self.orders.list_purchase_orders(
            supplier_id=supplier_id, mto_id=mto_id, status=status, limit=limit, offset=offset
        )

    async def _build_lines(self, lines: Iterable[PurchaseOrderLineCreate]) -> Dict[UUID, PurchaseOrderLineCreate]:
        merged: "OrderedDict[UUID, PurchaseOrderLineCreate]" = OrderedDict()
        for line in lines:
            if await self.items.get_item(line.item_id) is None:
                raise NotFoundError("Item", line.item_id)
            if line.item_id in merged:
                current = merged[line.item_id]
                merged[line.item_id] = current.model_copy(update={"quantity": current.quantity + line.quantity})
            else:
                merged[line.item_id] = line
        return merged

    async def _adjust_mto_ordered(self, mto_id: UUID, quantities: Dict[UUID, int]) -> None:
        """Add (or with negative values remove) PO quantities on the MTO lines, within 0..required."""
        for line in await self.mtos.list_lines(mto_id):
            change = quantities.get(line.item_id)
            if not change:
                continue
            line.quantity_ordered_po = max(0, min(line.quantity, line.quantity_ordered_po + change))
            line.ordered_by_id = self.actor
        await recompute_mto_status(self.session, mto_id)

    # PUBLIC_INTERFACE
    async def create(
        self,
        *,
        order_no: str,
        supplier_id: UUID,
        items: Iterable[PurchaseOrderLineCreate],
        mto_id: Optional[UUID] = None,
        notes: Optional[str] = None,
        total_amount: Optional[float] = None,
    ) -> PurchaseOrder:
        """
        Place a purchase order. When it references an MTO, the ordered
        quantities are credited to the matching MTO lines and the MTO status is
        recomputed in the same transaction.
        """
        async with self.atomic():
            if await self.suppliers.get_supplier(supplier_id) is None:
                raise NotFoundError("Supplier", supplier_id)
            if await self.orders.get_by_order_no(order_no) is not None:
                raise ValidationFailedError(f"Order number already exists: {order_no}", {"order_no": order_no})
            if mto_id is not None and await self.mtos.get_mto(mto_id, for_update=True) is None:
                raise NotFoundError("Materials to order", mto_id)

            lines = await self._build_lines(items)
            if total_amount is None and all(line.unit_price is not None for line in lines.values()):
                total_amount = sum(Decimal(str(line.unit_price)) * line.quantity for line in lines.values())

            po = PurchaseOrder(
                order_no=order_no,
                supplier_id=supplier_id,
                mto_id=mto_id,
                status=POStatus.ORDERED.value,
                ordered_by=self.actor,
                ordered_at=utcnow(),
                total_amount=total_amount,
                notes=notes,
                items=[
                    PurchaseOrderItem(
                        item_id=line.item_id, quantity=line.quantity, unit_price=line.unit_price, notes=line.notes
                    )
                    for line in lines.values()
                ],
            )
            await self.orders.add(po)
            await self.orders.flush()
            if mto_id is not None:
                await self._adjust_mto_ordered(mto_id, {k: v.quantity for k, v in lines.items()})
            po_id = po.id

        logger.info("Created purchase order %s (%s) with %d lines", order_no, po_id, len(lines))
        return await self.get(po_id)

    # PUBLIC_INTERFACE
    async def receive(self, po_id: UUID, lines: Iterable[ReceiveLine]) -> PurchaseOrder:
        """
        Book a goods receipt.

        The PO row is locked for the whole transaction so concurrent receipts
        serialize. Every line is validated before anything is written; an
        over-receipt on any line rejects the whole receipt.
        """
        receipt = aggregate_receipt(lines)

        async with self.atomic():
            po = await self.orders.get_purchase_order(po_id, for_update=True)
            if po is None:
                raise NotFoundError("Purchase order", po_id)
            by_item = {line.item_id: line for line in await self.orders.list_lines(po_id)}

            for entry in receipt:
                po_line = by_item.get(entry.item_id)
                if po_line is None:
                    raise NotFoundError("Purchase order item", entry.item_id)
                if po_line.quantity_received + entry.quantity > po_line.quantity:
                    raise OverReceiveError(
                        entry.item_id, po_line.quantity, po_line.quantity_received, entry.quantity
                    )

            for entry in receipt:
                po_line = by_item[entry.item_id]
                po_line.quantity_received += entry.quantity
                await self.ledger.apply_delta(
                    entry.item_id,
                    entry.quantity,
                    StockTransactionType.ADDED,
                    purchase_order_id=po_id,
                    notes="; ".join(entry.notes) or f"Received on {po.order_no}",
                )
            await recompute_po_status(self.session, po_id)

        logger.info("Received %d line(s) on purchase order %s", len(receipt), po_id)
        return await self.get(po_id)

    # PUBLIC_INTERFACE
    async def update(
        self,
        po_id: UUID,
        *,
        notes: Optional[str] = None,
        total_amount: Optional[float] = None,
        status: Optional[str] = None,
        items: Optional[Iterable[PurchaseOrderLineCreate]] = None,
    ) -> PurchaseOrder:
        """Patch a PO. Status can only be set to CANCELLED; lines keep what was received."""
        async with self.atomic():
            po = await self.orders.get_purchase_order(po_id, for_update=True)
            if po is None:
                raise NotFoundError("Purchase order", po_id)

            if notes is not None:
                po.notes = notes
            if total_amount is not None:
                po.total_amount = total_amount
            if items is not None:
                await self._replace_lines(po, items)
            if status is not None and status != po.status:
                if status != POStatus.CANCELLED.value:
                    raise ValidationFailedError(
                        "Purchase order status is derived from received quantities; only CANCELLED can be set",
                        {"status": status},
                    )
                po.status = POStatus.CANCELLED.value
            await recompute_po_status(self.session, po_id)

        return await self.get(po_id)

    async def _replace_lines(self, po: PurchaseOrder, items: Iterable[PurchaseOrderLineCreate]) -> None:
        current = {line.item_id: line for line in await self.orders.list_lines(po.id)}
        wanted = await self._build_lines(items)

        for item_id, line in current.items():
            if item_id not in wanted and line.quantity_received > 0:
                raise ValidationFailedError(
                    "Lines with received goods cannot be removed",
                    {"item_id": str(item_id), "quantity_received": line.quantity_received},
                )
        new_lines = []
        for item_id, line in wanted.items():
            existing = current.get(item_id)
            received = existing.quantity_received if existing is not None else 0
            if line.quantity < received:
                raise ValidationFailedError(
                    "Ordered quantity cannot be lower than the quantity already received",
                    {"item_id": str(item_id), "quantity": line.quantity, "quantity_received": received},
                )
            if existing is not None:
                existing.quantity = line.quantity
                existing.unit_price = line.unit_price
                existing.notes = line.notes
                new_lines.append(existing)
            else:
                new_lines.append(
                    PurchaseOrderItem(
                        item_id=item_id, quantity=line.quantity, unit_price=line.unit_price, notes=line.notes
                    )
                )
        po.items = new_lines
        await self.orders.flush()

    # PUBLIC_INTERFACE
    async def delete(self, po_id: UUID) -> PurchaseOrder:
        """Soft-delete a PO that has not received anything; its MTO credit is withdrawn."""
        async with self.atomic():
            po = await self.orders.get_purchase_order(po_id, for_update=True)
            if po is None:
                raise NotFoundError("Purchase order", po_id)
            lines = await self.orders.list_lines(po_id)
            if any(line.quantity_received > 0 for line in lines):
                raise ForbiddenOperationError(
                    "A purchase order with received goods cannot be deleted",
                    {"po_id": str(po_id), "status": po.status},
                )
            po.is_deleted = True
            if po.mto_id is not None and await self.mtos.get_mto(po.mto_id, for_update=True) is not None:
                await self._adjust_mto_ordered(po.mto_id, {line.item_id: -line.quantity for line in lines})
        logger.info("Deleted purchase order %s", po_id)
        return po
