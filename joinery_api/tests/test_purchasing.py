"""
Tests for purchase orders: creation against an MTO, receiving and cancellation
"""
import uuid

import pytest

from joinery.core.errors import (
    ForbiddenOperationError,
    NotFoundError,
    OverReceiveError,
    ValidationFailedError,
)
from joinery.db.models.enums import MTOStatus, POStatus
from joinery.schemas.procurement import PurchaseOrderLineCreate, ReceiveLine
from joinery.services.items import ItemService
from joinery.services.materials import MaterialsToOrderService
from joinery.services.purchasing import PurchaseOrderService, aggregate_receipt


def receipt(item_id, quantity, notes=None):
    return [ReceiveLine(item_id=item_id, quantity=quantity, notes=notes)]


class TestAggregateReceipt:
    """Receipt line normalisation"""

    def test_zero_lines_skipped_and_duplicates_summed(self):
        """Test zero quantities are dropped and repeated items merged"""
        a, b = uuid.uuid4(), uuid.uuid4()
        merged = aggregate_receipt(
            [
                ReceiveLine(item_id=a, quantity=2, notes="crate 1"),
                ReceiveLine(item_id=b, quantity=0),
                ReceiveLine(item_id=a, quantity=3, notes="crate 2"),
            ]
        )
        assert [(m.item_id, m.quantity) for m in merged] == [(a, 5)]
        assert merged[0].notes == ["crate 1", "crate 2"]

    def test_only_zero_lines_rejected(self):
        """Test a receipt with nothing to receive is invalid"""
        with pytest.raises(ValidationFailedError):
            aggregate_receipt([ReceiveLine(item_id=uuid.uuid4(), quantity=0)])


class TestCreate:
    """Placing purchase orders"""

    async def test_create_computes_total(self, session, make_supplier, make_item):
        """Test totals come from unit prices when not given"""
        supplier_id = await make_supplier()
        item_id = await make_item()
        po = await PurchaseOrderService(session, "u").create(
            order_no="PO-100",
            supplier_id=supplier_id,
            items=[
                PurchaseOrderLineCreate(item_id=item_id, quantity=3, unit_price=12.5),
                PurchaseOrderLineCreate(item_id=item_id, quantity=1, unit_price=12.5),
            ],
        )
        assert po.status == POStatus.ORDERED.value
        assert po.ordered_by == "u"
        assert po.ordered_at is not None
        assert float(po.total_amount) == 50.0
        assert [(line.item_id, line.quantity) for line in po.items] == [(item_id, 4)]

    async def test_duplicate_order_no_rejected(self, session, make_supplier, make_item, make_po):
        """Test order numbers are unique"""
        supplier_id = await make_supplier()
        item_id = await make_item()
        await make_po(supplier_id, [(item_id, 1)], order_no="PO-7")
        with pytest.raises(ValidationFailedError):
            await make_po(supplier_id, [(item_id, 1)], order_no="PO-7")

    async def test_unknown_supplier(self, session, make_item):
        """Test a PO needs an existing supplier"""
        item_id = await make_item()
        with pytest.raises(NotFoundError):
            await PurchaseOrderService(session, "u").create(
                order_no="PO-1",
                supplier_id=uuid.uuid4(),
                items=[PurchaseOrderLineCreate(item_id=item_id, quantity=1)],
            )

    async def test_create_against_mto_credits_lines(self, session, make_supplier, make_item, make_mto, make_po):
        """Test PO quantities count as ordered on the MTO"""
        supplier_id = await make_supplier()
        item_id = await make_item(supplier_id=supplier_id)
        mto_id, _ = await make_mto([(item_id, 4)])

        await make_po(supplier_id, [(item_id, 3)], mto_id=mto_id)
        mto = await MaterialsToOrderService(session).get(mto_id)
        assert mto.items[0].quantity_ordered_po == 3
        assert mto.status == MTOStatus.PARTIALLY_ORDERED.value

        await make_po(supplier_id, [(item_id, 3)], order_no="PO-2", mto_id=mto_id)
        mto = await MaterialsToOrderService(session).get(mto_id)
        assert mto.items[0].quantity_ordered_po == 4
        assert mto.status == MTOStatus.FULLY_ORDERED.value


class TestReceive:
    """Goods receipt"""

    async def test_partial_then_full_then_over(self, session, make_supplier, make_item, make_po):
        """Test 6 then 4 of 10 completes the line and 1 more is rejected"""
        supplier_id = await make_supplier()
        item_id = await make_item()
        po_id = await make_po(supplier_id, [(item_id, 10)])
        svc = PurchaseOrderService(session, "u")

        po = await svc.receive(po_id, receipt(item_id, 6))
        assert po.status == POStatus.PARTIALLY_RECEIVED.value
        assert po.items[0].quantity_received == 6

        po = await svc.receive(po_id, receipt(item_id, 4))
        assert po.status == POStatus.FULLY_RECEIVED.value
        assert (await ItemService(session).get(item_id)).quantity == 10

        with pytest.raises(OverReceiveError) as exc_info:
            await svc.receive(po_id, receipt(item_id, 1))
        assert exc_info.value.details["remaining"] == 0
        assert (await ItemService(session).get(item_id)).quantity == 10

    async def test_receipt_into_cancelled_order_keeps_status(self, session, make_supplier, make_item, make_po):
        """Test goods arriving on a cancelled order are booked but the order stays CANCELLED"""
        supplier_id = await make_supplier()
        item_id = await make_item()
        po_id = await make_po(supplier_id, [(item_id, 10)])
        svc = PurchaseOrderService(session, "u")
        await svc.update(po_id, status=POStatus.CANCELLED.value)

        po = await svc.receive(po_id, receipt(item_id, 10))

        assert po.status == POStatus.CANCELLED.value
        assert po.items[0].quantity_received == 10
        assert (await ItemService(session).get(item_id)).quantity == 10

    async def test_over_receive_reports_remaining(self, session, make_supplier, make_item, make_po):
        """Test ordered 10, received 7, request 5 leaves nothing booked"""
        supplier_id = await make_supplier()
        item_id = await make_item()
        po_id = await make_po(supplier_id, [(item_id, 10)])
        svc = PurchaseOrderService(session, "u")
        await svc.receive(po_id, receipt(item_id, 7))

        with pytest.raises(OverReceiveError) as exc_info:
            await svc.receive(po_id, receipt(item_id, 5))

        details = exc_info.value.details
        assert details["ordered"] == 10
        assert details["already_received"] == 7
        assert details["requested"] == 5
        assert details["remaining"] == 3
        po = await svc.get(po_id)
        assert po.items[0].quantity_received == 7

    async def test_whole_receipt_rejected_when_one_line_over(self, session, make_supplier, make_item, make_po):
        """Test a valid line is not booked when another line over-receives"""
        supplier_id = await make_supplier()
        a = await make_item()
        b = await make_item(name="Soft-close hinge")
        po_id = await make_po(supplier_id, [(a, 5), (b, 2)])

        with pytest.raises(OverReceiveError):
            await PurchaseOrderService(session, "u").receive(
                po_id, [ReceiveLine(item_id=a, quantity=5), ReceiveLine(item_id=b, quantity=3)]
            )
        assert (await ItemService(session).get(a)).quantity == 0

    async def test_item_not_on_order(self, session, make_supplier, make_item, make_po):
        """Test receiving an item the PO does not contain is a 404"""
        supplier_id = await make_supplier()
        item_id = await make_item()
        other_id = await make_item(name="Walnut sheet")
        po_id = await make_po(supplier_id, [(item_id, 2)])
        with pytest.raises(NotFoundError) as exc_info:
            await PurchaseOrderService(session, "u").receive(po_id, receipt(other_id, 1))
        assert exc_info.value.details["resource"] == "Purchase order item"

    async def test_unknown_order(self, session, make_item):
        """Test receiving on a missing PO is a 404"""
        item_id = await make_item()
        with pytest.raises(NotFoundError):
            await PurchaseOrderService(session, "u").receive(uuid.uuid4(), receipt(item_id, 1))


class TestUpdateAndDelete:
    """Cancellation, line edits and deletion"""

    async def test_only_cancelled_can_be_set(self, session, make_supplier, make_item, make_po):
        """Test derived statuses cannot be written by hand"""
        supplier_id = await make_supplier()
        item_id = await make_item()
        po_id = await make_po(supplier_id, [(item_id, 2)])
        svc = PurchaseOrderService(session, "u")

        with pytest.raises(ValidationFailedError):
            await svc.update(po_id, status=POStatus.FULLY_RECEIVED.value)

        po = await svc.update(po_id, status=POStatus.CANCELLED.value)
        assert po.status == POStatus.CANCELLED.value

    async def test_lines_cannot_drop_below_received(self, session, make_supplier, make_item, make_po):
        """Test ordered quantities stay at or above what was received"""
        supplier_id = await make_supplier()
        item_id = await make_item()
        po_id = await make_po(supplier_id, [(item_id, 5)])
        svc = PurchaseOrderService(session, "u")
        await svc.receive(po_id, receipt(item_id, 3))

        with pytest.raises(ValidationFailedError):
            await svc.update(po_id, items=[PurchaseOrderLineCreate(item_id=item_id, quantity=2)])

        po = await svc.update(po_id, items=[PurchaseOrderLineCreate(item_id=item_id, quantity=3)])
        assert po.items[0].quantity_received == 3
        assert po.status == POStatus.FULLY_RECEIVED.value

    async def test_delete_after_receipt_forbidden(self, session, make_supplier, make_item, make_po):
        """Test a PO with received goods cannot be deleted"""
        supplier_id = await make_supplier()
        item_id = await make_item()
        po_id = await make_po(supplier_id, [(item_id, 5)])
        svc = PurchaseOrderService(session, "u")
        await svc.receive(po_id, receipt(item_id, 1))
        with pytest.raises(ForbiddenOperationError):
            await svc.delete(po_id)

    async def test_delete_withdraws_mto_credit(self, session, make_supplier, make_item, make_mto, make_po):
        """Test deleting an unreceived PO lowers the MTO's ordered quantity"""
        supplier_id = await make_supplier()
        item_id = await make_item(supplier_id=supplier_id)
        mto_id, _ = await make_mto([(item_id, 4)])
        po_id = await make_po(supplier_id, [(item_id, 4)], mto_id=mto_id)

        await PurchaseOrderService(session, "u").delete(po_id)

        mto = await MaterialsToOrderService(session).get(mto_id)
        assert mto.items[0].quantity_ordered_po == 0
        assert mto.status == MTOStatus.DRAFT.value
        with pytest.raises(NotFoundError):
            await PurchaseOrderService(session).get(po_id)
