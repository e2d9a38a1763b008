from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from joinery.db.models.audit import AuditLog
from joinery.services.base import BaseService

logger = logging.getLogger(__name__)

AUDIT_FAILURE_WARNING = "Note: Operation succeeded but logging failed"


class AuditService(BaseService):
    """
    Writes audit entries after a mutation has been committed.

    The entry is committed on its own; a failure here never undoes the
    mutation it describes.
    """

    # PUBLIC_INTERFACE
    async def record(
        self,
        *,
        entity_type: str,
        entity_id: Any,
        action: str,
        description: Optional[str] = None,
    ) -> bool:
        """Persist one audit entry. Returns False (and logs) when the write fails."""
        try:
            self.session.add(
                AuditLog(
                    user_id=self.actor or "system",
                    entity_type=entity_type,
                    entity_id=str(entity_id) if entity_id is not None else None,
                    action=action,
                    description=description,
                )
            )
            await self.session.commit()
            return True
        except SQLAlchemyError:
            await self.session.rollback()
            logger.warning(
                "Audit logging failed for %s %s (%s)", entity_type, entity_id, action, exc_info=True
            )
            return False

    # PUBLIC_INTERFACE
    async def record_or_warn(self, **kwargs: Any) -> Optional[str]:
        """Like record(), but returns the response warning text on failure."""
        ok = await self.record(**kwargs)
        return None if ok else AUDIT_FAILURE_WARNING
