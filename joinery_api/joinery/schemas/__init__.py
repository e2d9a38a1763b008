"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by domain module (inventory, materials, procurement,
audit) and also include the common response envelopes.
"""

from .common import ApiResponse, ErrorResponse, MessageResponse  # noqa: F401
