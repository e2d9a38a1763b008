"""
Tests for manual stock transactions and stock tallies
"""
import uuid

import pytest

from joinery.core.errors import InsufficientStockError, ValidationFailedError
from joinery.db.models.enums import StockTransactionType
from joinery.schemas.inventory import StockTallyLine, StockTransactionCreate
from joinery.services.items import ItemService
from joinery.services.purchasing import PurchaseOrderService
from joinery.services.stock import StockTransactionService


async def item_quantity(session, item_id):
    return (await ItemService(session).get(item_id)).quantity


class TestRecord:
    """Manual ADDED / USED / WASTED transactions"""

    async def test_added_is_a_receipt(self, session, make_supplier, make_item, make_po):
        """Test ADDED books a receipt on the referenced purchase order"""
        supplier_id = await make_supplier()
        item_id = await make_item(quantity=1)
        po_id = await make_po(supplier_id, [(item_id, 5)])

        ref = await StockTransactionService(session, "u").record(
            StockTransactionCreate(item_id=item_id, type="ADDED", quantity=2, purchase_order_id=po_id)
        )

        assert ref == po_id
        assert await item_quantity(session, item_id) == 3
        po = await PurchaseOrderService(session).get(po_id)
        assert po.items[0].quantity_received == 2

    async def test_added_requires_purchase_order(self, session, make_item):
        """Test ADDED without a purchase order is rejected"""
        item_id = await make_item()
        with pytest.raises(ValidationFailedError):
            await StockTransactionService(session, "u").record(
                StockTransactionCreate(item_id=item_id, type="ADDED", quantity=2)
            )

    async def test_used_books_against_mto(self, session, make_item, make_mto):
        """Test USED consumes stock for the referenced MTO line"""
        item_id = await make_item(quantity=5)
        mto_id, _ = await make_mto([(item_id, 3)])

        ref = await StockTransactionService(session, "u").record(
            StockTransactionCreate(item_id=item_id, type="USED", quantity=2, materials_to_order_id=mto_id)
        )

        assert ref == mto_id
        assert await item_quantity(session, item_id) == 3

    async def test_used_requires_mto(self, session, make_item):
        """Test USED without a materials to order is rejected"""
        item_id = await make_item(quantity=5)
        with pytest.raises(ValidationFailedError):
            await StockTransactionService(session, "u").record(
                StockTransactionCreate(item_id=item_id, type="USED", quantity=1)
            )
        assert await item_quantity(session, item_id) == 5

    async def test_wasted_lowers_stock(self, session, make_item):
        """Test WASTED only decrements the balance"""
        item_id = await make_item(quantity=5)
        ref = await StockTransactionService(session, "u").record(
            StockTransactionCreate(item_id=item_id, type="WASTED", quantity=2, notes="Chipped edge")
        )
        assert ref is None
        assert await item_quantity(session, item_id) == 3

    async def test_wasted_cannot_go_negative(self, session, make_item):
        """Test wasting more than on hand fails with the shortage"""
        item_id = await make_item(quantity=1)
        with pytest.raises(InsufficientStockError) as exc_info:
            await StockTransactionService(session, "u").record(
                StockTransactionCreate(item_id=item_id, type="WASTED", quantity=4)
            )
        assert exc_info.value.details["shortage"] == 3
        assert await item_quantity(session, item_id) == 1

    def test_internal_types_not_accepted(self):
        """Test RESERVED and RELEASED cannot be posted by hand"""
        with pytest.raises(ValueError):
            StockTransactionCreate(item_id=uuid.uuid4(), type=StockTransactionType.RESERVED, quantity=1)


class TestTally:
    """Stock tally reconciliation"""

    async def test_tally_books_differences(self, session, make_item):
        """Test surplus, shortfall, unchanged and unknown lines are reported"""
        up_id = await make_item(quantity=2)
        down_id = await make_item(quantity=8, name="Chrome handle")
        same_id = await make_item(quantity=4, name="Cabinet leg")
        missing_id = uuid.uuid4()

        result = await StockTransactionService(session, "u").tally(
            [
                StockTallyLine(item_id=up_id, quantity=5),
                StockTallyLine(item_id=down_id, quantity=6),
                StockTallyLine(item_id=same_id, quantity=4),
                StockTallyLine(item_id=missing_id, quantity=1),
            ]
        )

        assert result.summary.total == 4
        assert result.summary.updated == 2
        assert result.summary.unchanged == 1
        assert result.summary.failed == 1
        by_item = {u.item_id: u for u in result.updated}
        assert by_item[up_id].difference == 3
        assert by_item[up_id].type == "ADDED"
        assert by_item[down_id].previous_quantity == 8
        assert by_item[down_id].type == "WASTED"
        assert result.errors[0].item_id == missing_id

        assert await item_quantity(session, up_id) == 5
        assert await item_quantity(session, down_id) == 6
        assert await item_quantity(session, same_id) == 4
