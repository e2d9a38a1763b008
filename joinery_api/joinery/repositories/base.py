from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import Executable
from sqlalchemy.engine import Result, ScalarResult
from sqlalchemy.ext.asyncio import AsyncSession


class BaseRepository:
    """
    Thin wrapper around an AsyncSession shared by all repositories.

    Repositories only add, flush and query; committing or rolling back is the
    calling service's job.
    """

    # Execution options that overwrite already-loaded instances with the row
    # currently in the database (needed after Core UPDATEs in the same transaction).
    fresh = {"populate_existing": True}

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable) -> Result:
        return await self.session.execute(statement)

    async def scalars(self, statement: Executable) -> ScalarResult:
        return (await self.session.execute(statement)).scalars()

    async def scalar_one_or_none(self, statement: Executable) -> Optional[Any]:
        return (await self.session.execute(statement)).scalar_one_or_none()

    async def add(self, entity: Any) -> None:
        self.session.add(entity)

    async def delete(self, entity: Any) -> None:
        await self.session.delete(entity)

    async def flush(self) -> None:
        """Push pending ORM changes so following Core statements see them."""
        await self.session.flush()
