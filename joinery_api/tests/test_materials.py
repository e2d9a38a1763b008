"""
Tests for materials to order: usage, completion and the one-way flag
"""
import pytest

from joinery.core.errors import (
    ForbiddenOperationError,
    InsufficientStockError,
    IrreversibleTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from joinery.db.models.enums import MTOStatus
from joinery.db.models.materials import MaterialsToOrder
from joinery.repositories.inventory import StockTransactionRepository
from joinery.schemas.materials import MaterialsToOrderLineCreate
from joinery.services.items import ItemService
from joinery.services.materials import MaterialsToOrderService, merge_lines
from joinery.services.reservations import ReservationService


async def item_quantity(session, item_id):
    return (await ItemService(session).get(item_id)).quantity


class TestCreate:
    """Creating materials to order"""

    async def test_created_as_draft_with_merged_lines(self, session, make_item):
        """Test duplicate item lines are summed into one"""
        item_id = await make_item(quantity=1)
        mto = await MaterialsToOrderService(session, "u").create(
            project_ref="LOT-7",
            notes="Kitchen A",
            items=[
                MaterialsToOrderLineCreate(item_id=item_id, quantity=2),
                MaterialsToOrderLineCreate(item_id=item_id, quantity=3),
            ],
        )
        assert mto.status == MTOStatus.DRAFT.value
        assert mto.used_material_completed is False
        assert [(line.item_id, line.quantity) for line in mto.items] == [(item_id, 5)]

    def test_merge_lines_keeps_order(self):
        """Test merge_lines preserves first-seen order"""
        import uuid

        a, b = uuid.uuid4(), uuid.uuid4()
        merged = merge_lines(
            [
                MaterialsToOrderLineCreate(item_id=a, quantity=1),
                MaterialsToOrderLineCreate(item_id=b, quantity=2),
                MaterialsToOrderLineCreate(item_id=a, quantity=4),
            ]
        )
        assert [(m.item_id, m.quantity) for m in merged] == [(a, 5), (b, 2)]


class TestCompletion:
    """used_material_completed transition"""

    async def test_completion_uses_remaining_and_closes(self, session, make_item, make_mto):
        """Test marking used deducts the outstanding quantity of every line"""
        sheet_id = await make_item(quantity=10)
        handle_id = await make_item(quantity=6, name="Bar handle")
        mto_id, lines = await make_mto([(sheet_id, 4), (handle_id, 2)])
        await ReservationService(session, "u").create(sheet_id, lines[sheet_id], 3)
        assert await item_quantity(session, sheet_id) == 7

        mto, completed = await MaterialsToOrderService(session, "u").update(mto_id, used_material_completed=True)

        assert completed is True
        assert mto.used_material_completed is True
        assert mto.status == MTOStatus.CLOSED.value
        assert mto.completed_at is not None
        assert all(line.quantity_used == line.quantity for line in mto.items)
        assert await item_quantity(session, sheet_id) == 6
        assert await item_quantity(session, handle_id) == 4

        rows = await StockTransactionRepository(session).list_for_item(sheet_id, limit=20, offset=0)
        used = sum(r.quantity for r in rows if r.type == "USED")
        assert used == 4

    async def test_completion_releases_reservation_above_need(self, session, make_item, make_mto):
        """Test a reservation larger than the line gives the surplus back on completion"""
        item_id = await make_item(quantity=10)
        mto_id, lines = await make_mto([(item_id, 5)])
        reservation = await ReservationService(session, "u").create(item_id, lines[item_id], 8)
        assert await item_quantity(session, item_id) == 2

        await MaterialsToOrderService(session, "u").update(mto_id, used_material_completed=True)

        assert await item_quantity(session, item_id) == 5
        row = await ReservationService(session).get(reservation.id)
        assert row.quantity == 5
        assert row.used_quantity == 5
        assert row.held_quantity == 0

        rows = await StockTransactionRepository(session).list_for_item(item_id, limit=20, offset=0)
        assert any(r.type == "RELEASED" and r.quantity == 3 for r in rows)

    async def test_completion_drops_unused_reservation(self, session, make_item, make_mto):
        """Test a second reservation never drawn on is removed and its stock returned"""
        item_id = await make_item(quantity=10)
        mto_id, lines = await make_mto([(item_id, 3)])
        svc = ReservationService(session, "u")
        await svc.create(item_id, lines[item_id], 3)
        spare = await svc.create(item_id, lines[item_id], 2)
        assert await item_quantity(session, item_id) == 5

        await MaterialsToOrderService(session, "u").update(mto_id, used_material_completed=True)

        assert await item_quantity(session, item_id) == 7
        with pytest.raises(NotFoundError):
            await svc.get(spare.id)

    async def test_completion_is_irreversible(self, session, make_item, make_mto):
        """Test setting the flag back to false is rejected"""
        item_id = await make_item(quantity=5)
        mto_id, _ = await make_mto([(item_id, 2)])
        svc = MaterialsToOrderService(session, "u")
        await svc.update(mto_id, used_material_completed=True)

        with pytest.raises(IrreversibleTransitionError) as exc_info:
            await svc.update(mto_id, used_material_completed=False)
        assert exc_info.value.status_code == 403

        mto = await svc.get(mto_id)
        assert mto.used_material_completed is True
        assert await item_quantity(session, item_id) == 3

    async def test_completing_twice_is_a_noop(self, session, make_item, make_mto):
        """Test a second true does not deduct stock again"""
        item_id = await make_item(quantity=5)
        mto_id, _ = await make_mto([(item_id, 2)])
        svc = MaterialsToOrderService(session, "u")
        await svc.update(mto_id, used_material_completed=True)

        _, completed = await svc.update(mto_id, used_material_completed=True)

        assert completed is False
        assert await item_quantity(session, item_id) == 3

    async def test_completion_rolls_back_on_shortage(self, session, make_item, make_mto):
        """Test a line without enough stock aborts the whole completion"""
        ok_id = await make_item(quantity=5)
        short_id = await make_item(quantity=1, name="Hinge")
        mto_id, _ = await make_mto([(ok_id, 2), (short_id, 3)])

        with pytest.raises(InsufficientStockError):
            await MaterialsToOrderService(session, "u").update(mto_id, used_material_completed=True)

        mto = await MaterialsToOrderService(session).get(mto_id)
        assert mto.used_material_completed is False
        assert all(line.quantity_used == 0 for line in mto.items)
        assert await item_quantity(session, ok_id) == 5
        assert await item_quantity(session, short_id) == 1

    def test_model_rejects_in_memory_revert(self):
        """Test the ORM model refuses true -> false"""
        mto = MaterialsToOrder(status=MTOStatus.CLOSED.value)
        mto.used_material_completed = True
        with pytest.raises(IrreversibleTransitionError):
            mto.used_material_completed = False


class TestUsage:
    """Recording material usage"""

    async def test_usage_consumes_reservation_first(self, session, make_item, make_mto):
        """Test usage draws on the line's reservation before free stock"""
        item_id = await make_item(quantity=10)
        mto_id, lines = await make_mto([(item_id, 6)])
        reservation_id = (await ReservationService(session, "u").create(item_id, lines[item_id], 4)).id

        mto = await MaterialsToOrderService(session, "u").use_material(mto_id, item_id, 5)

        assert mto.items[0].quantity_used == 5
        reservation = await ReservationService(session).get(reservation_id)
        assert reservation.used_quantity == 4
        assert await item_quantity(session, item_id) == 5

    async def test_usage_cannot_exceed_outstanding(self, session, make_item, make_mto):
        """Test using more than the line still needs is rejected"""
        item_id = await make_item(quantity=10)
        mto_id, _ = await make_mto([(item_id, 2)])
        with pytest.raises(ValidationFailedError):
            await MaterialsToOrderService(session, "u").use_material(mto_id, item_id, 3)
        assert await item_quantity(session, item_id) == 10

    async def test_usage_after_completion_forbidden(self, session, make_item, make_mto):
        """Test a completed MTO accepts no more usage"""
        item_id = await make_item(quantity=10)
        mto_id, _ = await make_mto([(item_id, 2)])
        svc = MaterialsToOrderService(session, "u")
        await svc.update(mto_id, used_material_completed=True)
        with pytest.raises(ForbiddenOperationError):
            await svc.use_material(mto_id, item_id, 1)


class TestOrderingAndDelete:
    """Manual ordered quantities and deletion"""

    async def test_manual_order_updates_status(self, session, make_supplier, make_item, make_mto):
        """Test quantity_ordered covers the line and notifies supplier completion"""
        supplier_id = await make_supplier()
        item_id = await make_item(supplier_id=supplier_id)
        mto_id, lines = await make_mto([(item_id, 4)])
        svc = MaterialsToOrderService(session, "u")

        mto, line, supplier_done = await svc.set_quantity_ordered(lines[item_id], 2)
        assert mto.status == MTOStatus.PARTIALLY_ORDERED.value
        assert supplier_done is False

        mto, line, supplier_done = await svc.set_quantity_ordered(lines[item_id], 4)
        assert mto.status == MTOStatus.FULLY_ORDERED.value
        assert line.ordered_by_id == "u"
        assert supplier_done is True

    async def test_negative_order_is_floored(self, session, make_item, make_mto):
        """Test a negative ordered quantity is stored as zero"""
        item_id = await make_item()
        _, lines = await make_mto([(item_id, 4)])
        _, line, _ = await MaterialsToOrderService(session, "u").set_quantity_ordered(lines[item_id], -3)
        assert line.quantity_ordered == 0

    async def test_delete_releases_reservations(self, session, make_item, make_mto):
        """Test deleting an MTO hands reserved stock back"""
        item_id = await make_item(quantity=5)
        mto_id, lines = await make_mto([(item_id, 4)])
        await ReservationService(session, "u").create(item_id, lines[item_id], 3)

        await MaterialsToOrderService(session, "u").delete(mto_id)

        assert await item_quantity(session, item_id) == 5
        assert await MaterialsToOrderService(session).list() == []

    async def test_replace_lines_only_in_draft(self, session, make_item, make_mto):
        """Test lines can be replaced on a DRAFT without reservations"""
        item_id = await make_item(quantity=5)
        other_id = await make_item(quantity=5, name="Edge tape")
        mto_id, lines = await make_mto([(item_id, 4)])
        svc = MaterialsToOrderService(session, "u")

        mto, _ = await svc.update(mto_id, items=[MaterialsToOrderLineCreate(item_id=other_id, quantity=2)])
        assert [(line.item_id, line.quantity) for line in mto.items] == [(other_id, 2)]

        line_id = mto.items[0].id
        await ReservationService(session, "u").create(other_id, line_id, 1)
        with pytest.raises(ValidationFailedError):
            await svc.update(mto_id, items=[MaterialsToOrderLineCreate(item_id=item_id, quantity=1)])
