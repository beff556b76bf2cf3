"""FastAPI dependency injection helpers."""

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch.config import settings
from dispatch.infrastructure.database import session_scope
from dispatch.infrastructure.redis_client import get_redis
from dispatch.infrastructure.sequences import (
    DatabaseSequenceStore,
    RedisSequenceStore,
    SequenceStore,
)
from dispatch.services.bookings import BookingService
from dispatch.services.identifiers import IdentifierGenerator


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with session_scope() as session:
        yield session


async def get_sequence_store(db: AsyncSession = Depends(get_db)) -> SequenceStore:
    if settings.sequence_backend == "redis":
        return RedisSequenceStore(await get_redis())
    return DatabaseSequenceStore(db)


async def get_booking_service(
    db: AsyncSession = Depends(get_db),
    store: SequenceStore = Depends(get_sequence_store),
) -> BookingService:
    return BookingService(db, IdentifierGenerator(store))


async def get_driver_id(x_driver_id: str = Header(..., min_length=1)) -> str:
    """The calling driver's employee id, sent as ``X-Driver-Id``."""
    return x_driver_id
