from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from joinery.db.models.enums import ItemCategory, StockTransactionType


class ItemCreate(BaseModel):
    """Create item payload; a positive opening quantity is booked as ADDED."""
    category: ItemCategory = Field(..., description="Item category")
    name: str = Field(..., min_length=1, description="Display name")
    description: Optional[str] = Field(None)
    measurement_unit: Optional[str] = Field(None, description="Unit of measure (pcs, m, sheet, ...)")
    supplier_reference: Optional[str] = Field(None, description="Supplier's article number")
    supplier_id: Optional[UUID] = Field(None, description="Default supplier")
    quantity: int = Field(0, ge=0, description="Opening stock")


class ItemRead(BaseModel):
    """Item read model."""
    id: UUID = Field(..., description="Item ID")
    category: str = Field(..., description="Item category")
    name: str = Field(..., description="Display name")
    description: Optional[str] = Field(None)
    measurement_unit: Optional[str] = Field(None)
    supplier_reference: Optional[str] = Field(None)
    supplier_id: Optional[UUID] = Field(None)
    quantity: int = Field(..., description="Quantity on hand (reservations already deducted)")
    created_at: datetime = Field(..., description="Created at")
    updated_at: datetime = Field(..., description="Updated at")

    class Config:
        from_attributes = True


class ItemDetail(ItemRead):
    """Item with the total currently reserved against it."""
    reserved_quantity: int = Field(0, description="Sum of reservation quantities")


class StockTransactionCreate(BaseModel):
    """
    Manual stock movement.

    ADDED must reference a purchase order and USED a materials-to-order; WASTED
    stands alone.
    """
    item_id: UUID = Field(..., description="Item id")
    type: StockTransactionType = Field(..., description="ADDED, USED or WASTED")
    quantity: int = Field(..., gt=0, description="Positive quantity")
    purchase_order_id: Optional[UUID] = Field(None)
    materials_to_order_id: Optional[UUID] = Field(None)
    notes: Optional[str] = Field(None)

    @field_validator("type")
    @classmethod
    def _manual_types_only(cls, v: StockTransactionType) -> StockTransactionType:
        if v not in (StockTransactionType.ADDED, StockTransactionType.USED, StockTransactionType.WASTED):
            raise ValueError("type must be one of ADDED, USED, WASTED")
        return v


class StockTransactionRead(BaseModel):
    """Ledger row read model."""
    id: UUID = Field(..., description="Transaction ID")
    item_id: UUID = Field(...)
    type: str = Field(...)
    quantity: int = Field(..., description="Absolute quantity moved")
    purchase_order_id: Optional[UUID] = Field(None)
    materials_to_order_id: Optional[UUID] = Field(None)
    notes: Optional[str] = Field(None)
    created_by: Optional[str] = Field(None)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class StockTallyLine(BaseModel):
    item_id: UUID = Field(..., description="Item id")
    quantity: int = Field(..., ge=0, description="Counted quantity on hand")
    notes: Optional[str] = Field(None)


class StockTallyRequest(BaseModel):
    """Physical stock count to reconcile against the book balance."""
    items: List[StockTallyLine] = Field(..., min_length=1)


class StockTallyUpdate(BaseModel):
    item_id: UUID
    previous_quantity: int
    counted_quantity: int
    difference: int
    type: str


class StockTallyError(BaseModel):
    item_id: UUID
    message: str


class StockTallySummary(BaseModel):
    total: int
    updated: int
    unchanged: int
    failed: int


class StockTallyResult(BaseModel):
    updated: List[StockTallyUpdate] = Field(default_factory=list)
    errors: List[StockTallyError] = Field(default_factory=list)
    summary: StockTallySummary


class ReservationCreate(BaseModel):
    """Reserve stock for a materials-to-order line."""
    item_id: UUID = Field(..., description="Item to hold")
    mto_item_id: UUID = Field(..., description="Materials-to-order line the stock is held for")
    quantity: int = Field(..., gt=0)


class ReservationUpdate(BaseModel):
    quantity: Optional[int] = Field(None, gt=0, description="New reserved quantity")
    mto_item_id: Optional[UUID] = Field(None, description="Move the reservation to another line")


class ReservationRead(BaseModel):
    """Reservation read model."""
    id: UUID = Field(..., description="Reservation ID")
    item_id: UUID = Field(...)
    mto_item_id: UUID = Field(...)
    quantity: int = Field(..., description="Reserved quantity")
    used_quantity: int = Field(..., description="Part of the reservation already consumed")
    user_id: Optional[str] = Field(None)
    created_at: datetime = Field(...)
    updated_at: datetime = Field(...)

    class Config:
        from_attributes = True


class ItemReservations(BaseModel):
    reservations: List[ReservationRead] = Field(default_factory=list)
    total_reserved: int = Field(0)
