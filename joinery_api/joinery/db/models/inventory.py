from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Text, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from joinery.db.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPkMixin
from joinery.db.models.enums import ItemCategory


class Item(UUIDPkMixin, SoftDeleteMixin, TimestampMixin, Base):
    """Inventory unit (sheet, handle, hardware, ...) with its on-hand balance."""
    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="quantity_non_negative"),
    )

    category: Mapped[str] = mapped_column(Text, nullable=False, default=ItemCategory.SHEET.value)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    measurement_unit: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    supplier_reference: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Only joinery.services.ledger.StockLedger writes this column.
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    supplier_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True
    )


class StockTransaction(UUIDPkMixin, TimestampMixin, Base):
    """Append-only ledger row describing one change of Item.quantity."""
    __tablename__ = "stock_transactions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
    )

    item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    purchase_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("purchase_orders.id", ondelete="SET NULL"), nullable=True, index=True
    )
    materials_to_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("materials_to_order.id", ondelete="SET NULL"), nullable=True, index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


@event.listens_for(StockTransaction, "before_update")
def _reject_ledger_update(mapper, connection, target) -> None:
    raise ValueError("stock_transactions rows are append-only")


@event.listens_for(StockTransaction, "before_delete")
def _reject_ledger_delete(mapper, connection, target) -> None:
    raise ValueError("stock_transactions rows are append-only")


class StockReservation(UUIDPkMixin, TimestampMixin, Base):
    """Stock held back from Item.quantity for one materials-to-order line."""
    __tablename__ = "stock_reservations"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("used_quantity >= 0 AND used_quantity <= quantity", name="used_within_quantity"),
    )

    item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    mto_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("materials_to_order_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    used_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    user_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    item: Mapped["Item"] = relationship("Item", lazy="selectin")

    @property
    def held_quantity(self) -> int:
        """Quantity still held off the item balance."""
        return self.quantity - self.used_quantity
