from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, Text, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from joinery.core.errors import IrreversibleTransitionError
from joinery.db.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPkMixin
from joinery.db.models.enums import MTOStatus
from joinery.db.models.inventory import Item, StockReservation


class MaterialsToOrder(UUIDPkMixin, SoftDeleteMixin, TimestampMixin, Base):
    """Request to reserve, use or order material for a project lot."""
    __tablename__ = "materials_to_order"

    project_ref: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default=MTOStatus.DRAFT.value)
    used_material_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    items: Mapped[List["MaterialsToOrderItem"]] = relationship(
        "MaterialsToOrderItem",
        back_populates="mto",
        lazy="selectin",
        order_by="MaterialsToOrderItem.created_at",
        cascade="all, delete-orphan",
    )

    @validates("used_material_completed")
    def _validate_used_material_completed(self, key, value):
        if self.used_material_completed and not value:
            raise IrreversibleTransitionError("materials_to_order", key)
        return value


class MaterialsToOrderItem(UUIDPkMixin, TimestampMixin, Base):
    """One material line of an MTO with its usage and ordering progress."""
    __tablename__ = "materials_to_order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("quantity_used >= 0 AND quantity_used <= quantity", name="used_within_quantity"),
    )

    mto_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("materials_to_order.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    # Manually recorded orders vs. orders placed through linked purchase orders.
    quantity_ordered: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    quantity_ordered_po: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    ordered_by_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    mto: Mapped["MaterialsToOrder"] = relationship("MaterialsToOrder", back_populates="items")
    item: Mapped["Item"] = relationship("Item", lazy="selectin")
    reservations: Mapped[List["StockReservation"]] = relationship(
        "StockReservation",
        lazy="selectin",
        order_by="StockReservation.created_at",
    )

    @property
    def reserved_quantity(self) -> int:
        return sum(r.quantity for r in self.reservations)

    @property
    def ordered_quantity(self) -> int:
        """PO-linked orders take precedence over the manual figure."""
        return self.quantity_ordered_po if self.quantity_ordered_po > 0 else self.quantity_ordered

    @property
    def outstanding_quantity(self) -> int:
        return self.quantity - self.quantity_used
