"""String enums stored in Text columns."""
from __future__ import annotations

import enum


class ItemCategory(str, enum.Enum):
    SHEET = "sheet"
    HANDLE = "handle"
    HARDWARE = "hardware"
    ACCESSORY = "accessory"
    EDGING_TAPE = "edging_tape"


class StockTransactionType(str, enum.Enum):
    """Ledger entry kinds. ADDED and RELEASED raise the balance, the rest lower it."""

    ADDED = "ADDED"
    USED = "USED"
    WASTED = "WASTED"
    RESERVED = "RESERVED"
    RELEASED = "RELEASED"

    @property
    def sign(self) -> int:
        return 1 if self in (StockTransactionType.ADDED, StockTransactionType.RELEASED) else -1


class MTOStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PARTIALLY_ORDERED = "PARTIALLY_ORDERED"
    FULLY_ORDERED = "FULLY_ORDERED"
    CLOSED = "CLOSED"


class POStatus(str, enum.Enum):
    ORDERED = "ORDERED"
    PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
    FULLY_RECEIVED = "FULLY_RECEIVED"
    CANCELLED = "CANCELLED"


# Reservations can no longer be removed once the MTO reaches one of these.
MTO_LOCKED_STATUSES = frozenset({MTOStatus.FULLY_ORDERED.value, MTOStatus.CLOSED.value})
