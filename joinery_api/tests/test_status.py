"""
Tests for status derivation: MTO coverage and PO receipt status
"""
from types import SimpleNamespace

from joinery.db.models.enums import MTOStatus, POStatus
from joinery.services.purchasing import PurchaseOrderService
from joinery.services.status import (
    derive_mto_status,
    derive_po_status,
    recompute_mto_status,
    recompute_po_status,
)
from joinery.schemas.procurement import ReceiveLine


def line(quantity, reserved=0, ordered=0):
    return SimpleNamespace(quantity=quantity, reserved_quantity=reserved, ordered_quantity=ordered)


def po_line(quantity, received):
    return SimpleNamespace(quantity=quantity, quantity_received=received)


class TestDeriveMtoStatus:
    """Pure MTO status derivation"""

    def test_no_lines_keeps_current(self):
        """Test an MTO without lines yields no new status"""
        assert derive_mto_status([]) is None

    def test_nothing_covered_is_draft(self):
        """Test uncovered lines give DRAFT"""
        assert derive_mto_status([line(5), line(3)]) == MTOStatus.DRAFT.value

    def test_partial_coverage(self):
        """Test any coverage short of full gives PARTIALLY_ORDERED"""
        assert derive_mto_status([line(5, reserved=2), line(3)]) == MTOStatus.PARTIALLY_ORDERED.value

    def test_reserved_plus_ordered_covers_line(self):
        """Test reservations and orders add up per line"""
        lines = [line(5, reserved=2, ordered=3), line(3, ordered=3)]
        assert derive_mto_status(lines) == MTOStatus.FULLY_ORDERED.value

    def test_over_coverage_counts_as_full(self):
        """Test coverage above the requirement is still fully ordered"""
        assert derive_mto_status([line(2, reserved=5)]) == MTOStatus.FULLY_ORDERED.value


class TestDerivePoStatus:
    """Pure PO status derivation"""

    def test_all_received(self):
        """Test every line received gives FULLY_RECEIVED"""
        lines = [po_line(10, 10), po_line(2, 2)]
        assert derive_po_status(POStatus.PARTIALLY_RECEIVED.value, lines) == POStatus.FULLY_RECEIVED.value

    def test_some_received(self):
        """Test partial receipt gives PARTIALLY_RECEIVED"""
        lines = [po_line(10, 6), po_line(2, 0)]
        assert derive_po_status(POStatus.ORDERED.value, lines) == POStatus.PARTIALLY_RECEIVED.value

    def test_nothing_received_keeps_status(self):
        """Test an untouched PO keeps its status"""
        assert derive_po_status(POStatus.ORDERED.value, [po_line(10, 0)]) == POStatus.ORDERED.value

    def test_cancelled_is_left_alone(self):
        """Test CANCELLED is never overwritten"""
        lines = [po_line(10, 10)]
        assert derive_po_status(POStatus.CANCELLED.value, lines) == POStatus.CANCELLED.value

    def test_idempotent(self):
        """Test deriving from a derived status gives the same status"""
        lines = [po_line(10, 6)]
        first = derive_po_status(POStatus.ORDERED.value, lines)
        assert derive_po_status(first, lines) == first


class TestRecompute:
    """Recompute against the database"""

    async def test_recompute_po_status_twice_is_stable(self, session, make_supplier, make_item, make_po):
        """Test recomputing PO status with no change in between is a no-op"""
        supplier_id = await make_supplier()
        item_id = await make_item()
        po_id = await make_po(supplier_id, [(item_id, 10)])
        await PurchaseOrderService(session, "u").receive(po_id, [ReceiveLine(item_id=item_id, quantity=6)])

        assert await recompute_po_status(session, po_id) is False
        assert await recompute_po_status(session, po_id) is False
        po = await PurchaseOrderService(session).get(po_id)
        assert po.status == POStatus.PARTIALLY_RECEIVED.value

    async def test_recompute_mto_status_is_idempotent(self, session, make_item, make_mto):
        """Test recomputing an MTO with no coverage leaves it DRAFT"""
        item_id = await make_item(quantity=5)
        mto_id, _ = await make_mto([(item_id, 3)])

        assert await recompute_mto_status(session, mto_id) is False
        assert await recompute_mto_status(session, mto_id) is False
