"""
Tests for the guarded stock delta and its ledger rows
"""
import pytest

from joinery.core.errors import InsufficientStockError, NotFoundError, ValidationFailedError
from joinery.db.models.enums import StockTransactionType
from joinery.repositories.inventory import StockTransactionRepository
from joinery.services.items import ItemService
from joinery.services.ledger import StockLedger

SIGNED = {
    StockTransactionType.ADDED.value: 1,
    StockTransactionType.RELEASED.value: 1,
    StockTransactionType.USED.value: -1,
    StockTransactionType.WASTED.value: -1,
    StockTransactionType.RESERVED.value: -1,
}


async def apply(session, item_id, delta, txn_type):
    ledger = StockLedger(session, "tester")
    async with ledger.atomic():
        return await ledger.apply_delta(item_id, delta, txn_type)


async def ledger_balance(session, item_id):
    rows = await StockTransactionRepository(session).list_for_item(item_id, limit=1000, offset=0)
    return sum(SIGNED[r.type] * r.quantity for r in rows)


class TestApplyDelta:
    """Stock mutation primitive"""

    async def test_opening_balance_is_recorded(self, session, make_item):
        """Test an item's opening quantity goes through the ledger"""
        item_id = await make_item(quantity=7)
        rows = await StockTransactionRepository(session).list_for_item(item_id, limit=10, offset=0)
        assert [(r.type, r.quantity, r.notes) for r in rows] == [("ADDED", 7, "Opening balance")]

    async def test_increment_and_decrement(self, session, make_item):
        """Test deltas in both directions update the balance"""
        item_id = await make_item(quantity=5)
        assert await apply(session, item_id, 3, StockTransactionType.ADDED) == 8
        assert await apply(session, item_id, -8, StockTransactionType.WASTED) == 0
        item = await ItemService(session).get(item_id)
        assert item.quantity == 0

    async def test_insufficient_stock_carries_quantities(self, session, make_item):
        """Test a decrement past zero is rejected with requested and available"""
        item_id = await make_item(quantity=4)
        with pytest.raises(InsufficientStockError) as exc_info:
            await apply(session, item_id, -6, StockTransactionType.USED)
        assert exc_info.value.details["requested"] == 6
        assert exc_info.value.details["available"] == 4
        assert exc_info.value.details["shortage"] == 2

        item = await ItemService(session).get(item_id)
        assert item.quantity == 4
        assert await ledger_balance(session, item_id) == 4

    async def test_balance_never_negative(self, session, make_item):
        """Test a sequence of mutations never drives stock below zero"""
        item_id = await make_item(quantity=3)
        deltas = [-2, -2, 1, -2, -1, 5, -6, -5]
        for delta in deltas:
            txn_type = StockTransactionType.ADDED if delta > 0 else StockTransactionType.USED
            try:
                await apply(session, item_id, delta, txn_type)
            except InsufficientStockError:
                pass
            item = await ItemService(session).get(item_id)
            assert item.quantity >= 0
            assert item.quantity == await ledger_balance(session, item_id)

    async def test_missing_item(self, session):
        """Test a delta on an unknown item is a not-found error"""
        import uuid

        with pytest.raises(NotFoundError):
            await apply(session, uuid.uuid4(), 1, StockTransactionType.ADDED)

    async def test_deleted_item_is_not_found(self, session, make_item):
        """Test soft-deleted items no longer accept stock"""
        item_id = await make_item(quantity=2)
        await ItemService(session).delete(item_id)
        with pytest.raises(NotFoundError):
            await apply(session, item_id, 1, StockTransactionType.ADDED)

    async def test_sign_must_match_type(self, session, make_item):
        """Test ADDED cannot lower and WASTED cannot raise stock"""
        item_id = await make_item(quantity=2)
        with pytest.raises(ValidationFailedError):
            await apply(session, item_id, -1, StockTransactionType.ADDED)
        with pytest.raises(ValidationFailedError):
            await apply(session, item_id, 1, StockTransactionType.WASTED)
        with pytest.raises(ValidationFailedError):
            await apply(session, item_id, 0, StockTransactionType.ADDED)
