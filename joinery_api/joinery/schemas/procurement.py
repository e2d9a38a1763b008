from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from joinery.db.models.enums import POStatus


class SupplierRead(BaseModel):
    """Supplier read model."""
    id: UUID = Field(..., description="Supplier ID")
    name: str = Field(..., description="Supplier name")
    email: Optional[str] = Field(None)
    phone: Optional[str] = Field(None)
    address: dict = Field(default_factory=dict)
    created_at: datetime = Field(..., description="Created at")
    updated_at: datetime = Field(..., description="Updated at")

    class Config:
        from_attributes = True


class SupplierCreate(BaseModel):
    """Create supplier payload."""
    name: str = Field(..., min_length=1, description="Supplier name")
    email: Optional[str] = Field(None)
    phone: Optional[str] = Field(None)
    address: dict = Field(default_factory=dict)


class PurchaseOrderLineCreate(BaseModel):
    item_id: UUID = Field(..., description="Item id")
    quantity: int = Field(..., gt=0, description="Ordered quantity")
    unit_price: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None)


class PurchaseOrderCreate(BaseModel):
    """Create PO payload."""
    order_no: str = Field(..., min_length=1, description="Order number (unique)")
    supplier_id: UUID = Field(..., description="Supplier id")
    mto_id: Optional[UUID] = Field(None, description="Materials-to-order this PO fulfils")
    notes: Optional[str] = Field(None)
    total_amount: Optional[float] = Field(None, ge=0)
    items: List[PurchaseOrderLineCreate] = Field(..., min_length=1)


class PurchaseOrderUpdate(BaseModel):
    """Patch PO payload. Only CANCELLED may be set by hand; other statuses are derived."""
    notes: Optional[str] = Field(None)
    total_amount: Optional[float] = Field(None, ge=0)
    status: Optional[POStatus] = Field(None)
    items: Optional[List[PurchaseOrderLineCreate]] = Field(None, min_length=1)


class PurchaseOrderLineRead(BaseModel):
    """PO line read model."""
    id: UUID = Field(..., description="Line ID")
    order_id: UUID = Field(..., description="PO id")
    item_id: UUID = Field(..., description="Item id")
    quantity: int = Field(..., description="Ordered qty")
    quantity_received: int = Field(..., description="Received qty")
    unit_price: Optional[float] = Field(None)
    notes: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class PurchaseOrderRead(BaseModel):
    """PO read model with lines."""
    id: UUID = Field(..., description="PO ID")
    order_no: str = Field(..., description="Order number")
    supplier_id: UUID = Field(..., description="Supplier")
    mto_id: Optional[UUID] = Field(None)
    status: str = Field(...)
    ordered_by: Optional[str] = Field(None)
    ordered_at: Optional[datetime] = Field(None)
    total_amount: Optional[float] = Field(None)
    notes: Optional[str] = Field(None)
    items: List[PurchaseOrderLineRead] = Field(default_factory=list)
    created_at: datetime = Field(..., description="Created at")
    updated_at: datetime = Field(..., description="Updated at")

    class Config:
        from_attributes = True


class ReceiveLine(BaseModel):
    item_id: UUID = Field(..., description="Item on the purchase order")
    quantity: int = Field(..., ge=0, description="Quantity received now; 0 lines are skipped")
    notes: Optional[str] = Field(None)


class ReceiveRequest(BaseModel):
    """Goods receipt against a purchase order."""
    items: List[ReceiveLine] = Field(..., min_length=1)
