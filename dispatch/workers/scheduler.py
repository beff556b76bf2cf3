"""
Background Booking Sweep
========================

Runs once a day at ``SWEEP_HOUR`` local time (default midnight), and once
at startup when ``SWEEP_ON_STARTUP`` is set.

Concurrency safety
------------------
* A **Redis lease** ensures only one API process runs the sweep
  at a time; the others skip that run.
* The sweep only writes vehicle / employee status, which is idempotent, so
  a booking that was already activated at creation time is harmless to
  activate again.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from dispatch.config import settings
from dispatch.infrastructure.database import session_scope
from dispatch.infrastructure.locks import SweepLease
from dispatch.infrastructure.redis_client import get_redis
from dispatch.services.clock import local_now
from dispatch.services.resource_sync import process_scheduled_bookings

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_scheduler() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info("Booking sweep scheduled daily at %02d:00", settings.sweep_hour)


async def stop_scheduler() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Booking sweep stopped")


def seconds_until_next_run(now: datetime, hour: int = 0) -> float:
    """Seconds from *now* until the next ``hour:00`` on *now*'s clock."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


async def run_sweep() -> int:
    """Execute one sweep.  Returns the number of bookings activated."""
    lease = SweepLease(
        await get_redis(),
        "booking_sweep",
        ttl_seconds=settings.sweep_lock_ttl_seconds,
    )

    if not await lease.acquire():
        logger.debug("Sweep lease held by another process; skipping")
        return 0

    try:
        async with session_scope() as session:
            activated = await process_scheduled_bookings(
                session, today=local_now().date()
            )
        return len(activated)
    finally:
        await lease.release()


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    assert _stop_event is not None
    if settings.sweep_on_startup:
        await _run_safely()
    while not _stop_event.is_set():
        delay = seconds_until_next_run(local_now(), settings.sweep_hour)
        try:
            await asyncio.wait_for(_stop_event.wait(), timeout=delay)
            break
        except asyncio.TimeoutError:
            await _run_safely()


async def _run_safely() -> None:
    try:
        activated = await run_sweep()
        logger.info("Booking sweep: %d bookings activated", activated)
    except Exception:
        logger.exception("Unhandled error in booking sweep")
