from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Integer, Numeric, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from joinery.db.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPkMixin
from joinery.db.models.enums import POStatus


class Supplier(UUIDPkMixin, SoftDeleteMixin, TimestampMixin, Base):
    """Supplier/vendor master."""
    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)


class PurchaseOrder(UUIDPkMixin, SoftDeleteMixin, TimestampMixin, Base):
    """Purchase order header."""
    __tablename__ = "purchase_orders"

    order_no: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    mto_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("materials_to_order.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # Derived from the lines except for CANCELLED; see joinery.services.status.
    status: Mapped[str] = mapped_column(Text, nullable=False, default=POStatus.ORDERED.value)
    ordered_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ordered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    total_amount: Mapped[Optional[float]] = mapped_column(Numeric(12, 2), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    items: Mapped[List["PurchaseOrderItem"]] = relationship(
        "PurchaseOrderItem",
        back_populates="order",
        lazy="selectin",
        order_by="PurchaseOrderItem.created_at",
        cascade="all, delete-orphan",
    )


class PurchaseOrderItem(UUIDPkMixin, TimestampMixin, Base):
    """Purchase order line item."""
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint(
            "quantity_received >= 0 AND quantity_received <= quantity", name="received_within_ordered"
        ),
    )

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    unit_price: Mapped[Optional[float]] = mapped_column(Numeric(12, 2), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    order: Mapped["PurchaseOrder"] = relationship("PurchaseOrder", back_populates="items")
