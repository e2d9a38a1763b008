"""
ORM models for the stock ledger, reservations, materials-to-order,
procurement and audit log.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .enums import (  # noqa: F401
    ItemCategory,
    MTOStatus,
    POStatus,
    StockTransactionType,
)
from .inventory import (  # noqa: F401
    Item,
    StockReservation,
    StockTransaction,
)
from .procurement import (  # noqa: F401
    PurchaseOrder,
    PurchaseOrderItem,
    Supplier,
)
from .materials import (  # noqa: F401
    MaterialsToOrder,
    MaterialsToOrderItem,
)
from .audit import AuditLog  # noqa: F401
