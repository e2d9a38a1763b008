from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AuditLogRead(BaseModel):
    """Audit entry read model."""
    id: UUID = Field(...)
    user_id: str = Field(..., description="User who performed the action")
    entity_type: str = Field(...)
    entity_id: Optional[str] = Field(None)
    action: str = Field(..., description="create, update, delete, receive, ...")
    description: Optional[str] = Field(None)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True
