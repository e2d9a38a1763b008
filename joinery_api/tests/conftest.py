import os

os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from joinery.api.main import app
from joinery.core.security import create_access_token
from joinery.db.base import Base
from joinery.db.models.enums import ItemCategory
from joinery.db.session import build_session_maker, get_async_session
from joinery.schemas.inventory import ItemCreate
from joinery.schemas.materials import MaterialsToOrderLineCreate
from joinery.schemas.procurement import PurchaseOrderLineCreate, SupplierCreate
from joinery.services.items import ItemService
from joinery.services.materials import MaterialsToOrderService
from joinery.services.purchasing import PurchaseOrderService, SupplierService

ACTOR = "user-1"


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


@pytest.fixture
async def client(session_maker):
    async def _override_session():
        async with session_maker() as s:
            yield s

    app.dependency_overrides[get_async_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(ACTOR, 'manager')}"}


@pytest.fixture
def make_supplier(session):
    async def _make(name="Panel Supplies Ltd"):
        supplier = await SupplierService(session, ACTOR).create(SupplierCreate(name=name))
        return supplier.id

    return _make


@pytest.fixture
def make_item(session):
    async def _make(quantity=0, name="Oak veneer sheet", supplier_id=None, category=ItemCategory.SHEET):
        item = await ItemService(session, ACTOR).create(
            ItemCreate(
                category=category,
                name=name,
                measurement_unit="sheet",
                supplier_id=supplier_id,
                quantity=quantity,
            )
        )
        return item.id

    return _make


@pytest.fixture
def make_mto(session):
    async def _make(lines, project_ref="LOT-1"):
        """lines: [(item_id, quantity)]. Returns (mto_id, {item_id: line_id})."""
        mto = await MaterialsToOrderService(session, ACTOR).create(
            project_ref=project_ref,
            notes=None,
            items=[MaterialsToOrderLineCreate(item_id=i, quantity=q) for i, q in lines],
        )
        return mto.id, {line.item_id: line.id for line in mto.items}

    return _make


@pytest.fixture
def make_po(session):
    async def _make(supplier_id, lines, order_no="PO-1", mto_id=None):
        """lines: [(item_id, quantity)]. Returns the purchase order id."""
        po = await PurchaseOrderService(session, ACTOR).create(
            order_no=order_no,
            supplier_id=supplier_id,
            mto_id=mto_id,
            items=[PurchaseOrderLineCreate(item_id=i, quantity=q, unit_price=10.0) for i, q in lines],
        )
        return po.id

    return _make
