"""
Database Dependencies for FastAPI Routes

Routes declare what they need and FastAPI provides it:

    @router.get("/contents/{content_id}")
    async def show(content_id: int, db: DBSession):
        ...

Tests swap the session with ``app.dependency_overrides[get_db]``.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from feedboard.db.session import get_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session.

    Each request gets its own session/transaction:
    - Changes are isolated from other requests
    - You must explicitly commit: await db.commit()
    - Rollback happens automatically on errors

    Yields:
        AsyncSession: Database session for the current request
    """
    async for session in get_session():
        yield session


# Reusable annotation: ``db: DBSession`` instead of ``db: AsyncSession = Depends(get_db)``
DBSession = Annotated[AsyncSession, Depends(get_db)]


class DBTransaction:
    """
    Context manager for one explicit unit of work.

    Commits when the block exits cleanly, rolls back when it raises. The
    content service wraps "write content attributes + reconcile submissions"
    in one of these so both land in a single commit.

    Usage:
    ------
    async with DBTransaction(db):
        db.add(content)
        await db.flush()
        apply_plan(content, plan)
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self) -> AsyncSession:
        return self.session

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            await self.session.rollback()
        else:
            await self.session.commit()
        # Return False to propagate exceptions
        return False


__all__ = [
    "get_db",
    "DBSession",
    "DBTransaction",
]
