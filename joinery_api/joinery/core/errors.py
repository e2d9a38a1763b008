"""
Service error taxonomy.

Services raise these inside a transaction; the transaction is rolled back and
the API layer turns the error into the standard response envelope using
``status_code``, ``code`` and ``details``.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base class for business errors that map onto an HTTP status."""

    status_code: int = 400
    code: str = "service_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationFailedError(ServiceError):
    """Invalid input detected before any mutation."""

    code = "validation_error"


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, identifier: Any) -> None:
        super().__init__(
            f"{resource} not found: {identifier}",
            {"resource": resource, "identifier": str(identifier)},
        )


class InsufficientStockError(ServiceError):
    """Applying a stock delta would drive Item.quantity below zero."""

    code = "insufficient_stock"

    def __init__(self, item_id: Any, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough stock available for item {item_id}: requested {requested}, available {available}",
            {
                "item_id": str(item_id),
                "requested": requested,
                "available": available,
                "shortage": requested - available,
            },
        )


class OverReceiveError(ServiceError):
    """Receiving would push a PO line past its ordered quantity."""

    code = "over_receive"

    def __init__(self, item_id: Any, ordered: int, received: int, requested: int) -> None:
        remaining = ordered - received
        super().__init__(
            f"Cannot receive more than ordered quantity for item {item_id}. "
            f"Ordered: {ordered}, Already received: {received}, "
            f"Requested: {requested}, Remaining: {remaining}",
            {
                "item_id": str(item_id),
                "ordered": ordered,
                "already_received": received,
                "requested": requested,
                "remaining": remaining,
            },
        )


class ForbiddenOperationError(ServiceError):
    """Operation not allowed in the entity's current state."""

    status_code = 403
    code = "forbidden"


class IrreversibleTransitionError(ForbiddenOperationError):
    """Attempt to undo a one-way state transition."""

    code = "irreversible_transition"

    def __init__(self, entity: str, field: str) -> None:
        super().__init__(
            f"{field} cannot be reverted once set on {entity}",
            {"entity": entity, "field": field},
        )
