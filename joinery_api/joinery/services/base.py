from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession


class BaseService:
    """
    Base class for services. Holds a session for use across multiple repositories.

    Services keep business logic and transaction boundaries, delegating data
    access to repositories. `actor` is the authenticated user id recorded on
    rows the service creates.
    """

    def __init__(self, session: AsyncSession, actor: Optional[str] = None) -> None:
        self.session = session
        self.actor = actor

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[AsyncSession]:
        """
        Run the block as one database transaction.

        Commits when the block exits normally; any exception rolls back every
        statement issued inside the block and is re-raised unchanged.
        """
        try:
            yield self.session
            await self.session.commit()
        except BaseException:
            await self.session.rollback()
            raise
