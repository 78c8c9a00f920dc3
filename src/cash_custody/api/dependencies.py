"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from cash_custody.config import VarianceTolerance, get_settings
from cash_custody.database import init_db
from cash_custody.events import EventOutbox


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency.

    Routes commit explicitly; anything left uncommitted is rolled back
    when the session closes.
    """
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_actor_id(
    x_user_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract the acting user's ID from header."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-ID header is required",
        )
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-User-ID format",
        )


def get_outbox(request: Request) -> EventOutbox:
    """Per-request outbox publishing to the application-wide emitter."""
    return EventOutbox(request.app.state.emitter)


def get_tolerance() -> VarianceTolerance:
    """Variance tolerance from settings."""
    return get_settings().variance_tolerance


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
ActorId = Annotated[UUID, Depends(get_actor_id)]
Outbox = Annotated[EventOutbox, Depends(get_outbox)]
Tolerance = Annotated[VarianceTolerance, Depends(get_tolerance)]
