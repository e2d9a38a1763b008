from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MaterialsToOrderLineCreate(BaseModel):
    item_id: UUID = Field(..., description="Item id")
    quantity: int = Field(..., gt=0, description="Required quantity")
    notes: Optional[str] = Field(None)


class MaterialsToOrderCreate(BaseModel):
    """Create MTO payload. Lines for the same item are merged."""
    project_ref: Optional[str] = Field(None, description="Project or lot reference")
    notes: Optional[str] = Field(None)
    items: List[MaterialsToOrderLineCreate] = Field(..., min_length=1)


class MaterialsToOrderUpdate(BaseModel):
    """
    Patch MTO payload.

    `status` is derived and cannot be set. `used_material_completed` can only
    move from false to true.
    """
    project_ref: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)
    items: Optional[List[MaterialsToOrderLineCreate]] = Field(None, min_length=1)
    used_material_completed: Optional[bool] = Field(None)


class MaterialsToOrderLineOrderUpdate(BaseModel):
    quantity_ordered: int = Field(..., description="Quantity ordered outside purchase orders; negatives count as 0")


class MaterialsToOrderLineRead(BaseModel):
    """MTO line read model."""
    id: UUID = Field(..., description="Line ID")
    mto_id: UUID = Field(...)
    item_id: UUID = Field(...)
    quantity: int = Field(..., description="Required quantity")
    quantity_used: int = Field(...)
    quantity_ordered: int = Field(...)
    quantity_ordered_po: int = Field(...)
    reserved_quantity: int = Field(0, description="Sum of reservations on this line")
    ordered_by_id: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class MaterialsToOrderRead(BaseModel):
    """MTO read model."""
    id: UUID = Field(..., description="MTO ID")
    project_ref: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)
    status: str = Field(...)
    used_material_completed: bool = Field(...)
    completed_at: Optional[datetime] = Field(None)
    created_by: Optional[str] = Field(None)
    items: List[MaterialsToOrderLineRead] = Field(default_factory=list)
    created_at: datetime = Field(...)
    updated_at: datetime = Field(...)

    class Config:
        from_attributes = True
