"""
Derived status for materials-to-order and purchase orders.

The derive_* functions are pure; the recompute_* coroutines load current rows,
apply them and persist the result. Recomputing twice without an intervening
change is a no-op.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from joinery.db.models.enums import MTOStatus, POStatus
from joinery.repositories.materials import MaterialsToOrderRepository
from joinery.repositories.procurement import PurchaseOrderRepository

logger = logging.getLogger(__name__)


class CoverageLine(Protocol):
    quantity: int
    reserved_quantity: int
    ordered_quantity: int


class ReceiptLine(Protocol):
    quantity: int
    quantity_received: int


# PUBLIC_INTERFACE
def derive_mto_status(lines: Iterable[CoverageLine]) -> Optional[str]:
    """
    Decide an MTO status from how well each line is covered.

    A line is covered when reserved + ordered >= required. Returns None when
    there are no lines, meaning the current status should be kept.
    """
    lines = list(lines)
    if not lines:
        return None
    coverage = [(line.reserved_quantity + line.ordered_quantity, line.quantity) for line in lines]
    if all(covered >= required for covered, required in coverage):
        return MTOStatus.FULLY_ORDERED.value
    if any(covered > 0 for covered, _ in coverage):
        return MTOStatus.PARTIALLY_ORDERED.value
    return MTOStatus.DRAFT.value


# PUBLIC_INTERFACE
def derive_po_status(current: str, lines: Iterable[ReceiptLine]) -> str:
    """Decide a PO status from received vs ordered quantities; CANCELLED is kept."""
    if current == POStatus.CANCELLED.value:
        return current
    lines = list(lines)
    received = [line.quantity_received for line in lines]
    if lines and all(line.quantity_received >= line.quantity for line in lines):
        return POStatus.FULLY_RECEIVED.value
    if any(r > 0 for r in received):
        return POStatus.PARTIALLY_RECEIVED.value
    return current


# PUBLIC_INTERFACE
async def recompute_mto_status(session: AsyncSession, mto_id: UUID) -> bool:
    """
    Re-derive and store the MTO status. CLOSED and deleted MTOs are left alone.

    Pending ORM changes are flushed first so reservations and ordered
    quantities written earlier in the transaction are taken into account.

    Returns:
        bool: True when the stored status changed.
    """
    await session.flush()
    repo = MaterialsToOrderRepository(session)
    mto = await repo.get_mto(mto_id, fresh=True)
    if mto is None or mto.status == MTOStatus.CLOSED.value:
        return False
    lines = await repo.list_lines(mto_id)
    new_status = derive_mto_status(lines)
    if new_status is None or new_status == mto.status:
        return False
    logger.info("MTO %s status %s -> %s", mto_id, mto.status, new_status)
    mto.status = new_status
    await session.flush()
    return True


# PUBLIC_INTERFACE
async def recompute_po_status(session: AsyncSession, po_id: UUID) -> bool:
    """Re-derive and store the PO status from its lines; returns True on change."""
    await session.flush()
    repo = PurchaseOrderRepository(session)
    po = await repo.get_purchase_order(po_id, fresh=True)
    if po is None:
        return False
    new_status = derive_po_status(po.status, await repo.list_lines(po_id))
    if new_status == po.status:
        return False
    logger.info("PO %s status %s -> %s", po_id, po.status, new_status)
    po.status = new_status
    await session.flush()
    return True
