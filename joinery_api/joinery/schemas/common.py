from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class MessageResponse(BaseModel):
    """Standard message response."""
    message: str = Field(..., description="Human readable message")


# PUBLIC_INTERFACE
class ApiResponse(BaseModel, Generic[T]):
    """Success envelope shared by every JSON endpoint."""
    status: bool = Field(True, description="Always true for successful responses")
    message: str = Field(..., description="Human readable outcome")
    data: Optional[T] = Field(default=None, description="Response payload")
    warning: Optional[str] = Field(
        default=None, description="Set when the operation succeeded but a side effect (audit log) failed"
    )


class ErrorInfo(BaseModel):
    """Structured error description."""
    type: str = Field(..., description="Machine-readable error type code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(default=None, description="Optional error details (e.g., validation issues)")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Standardized API error envelope returned by exception handlers."""
    status: bool = Field(False, description="Always false for errors")
    status_code: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Human readable error message")
    data: Optional[Any] = Field(default=None, description="Quantities or identifiers involved in the error")
    error: ErrorInfo = Field(..., description="Error details")
    correlation_id: Optional[str] = Field(default=None, description="Request correlation ID")
    path: Optional[str] = Field(default=None, description="Request path")
    method: Optional[str] = Field(default=None, description="HTTP method")
    timestamp: datetime = Field(..., description="Error timestamp (UTC)")
