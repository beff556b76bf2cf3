"""
FastAPI application factory.

* Registers routes for dispatcher bookings, drivers and admin.
* Starts / stops the daily booking sweep via lifespan events.
* Maps booking rule violations and storage races onto HTTP responses.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from dispatch.api.middleware import limiter
from dispatch.api.routes import admin, bookings, driver
from dispatch.config import settings
from dispatch.domain.errors import (
    BookingError,
    BookingLocked,
    BookingNotFound,
    DeliveryStopNotFound,
    DriverNotAssigned,
    InvalidBooking,
    InvalidStateTransition,
    ScheduleConflict,
    VehicleChangeAlreadyPending,
)
from dispatch.infrastructure.redis_client import close_redis
from dispatch.workers import scheduler as _scheduler

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Most specific first: BookingLocked is an InvalidStateTransition
_ERROR_STATUS: list[tuple[type[BookingError], int]] = [
    (BookingNotFound, 404),
    (DeliveryStopNotFound, 404),
    (BookingLocked, 400),
    (InvalidStateTransition, 409),
    (ScheduleConflict, 409),
    (DriverNotAssigned, 403),
    (VehicleChangeAlreadyPending, 409),
    (InvalidBooking, 400),
]


def status_for(exc: BookingError) -> int:
    for cls, code in _ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    return 400


async def _booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    body: dict = {"detail": str(exc)}
    if isinstance(exc, ScheduleConflict):
        body["conflicts"] = {
            "vehicle": exc.conflicts.vehicle,
            "employees": list(exc.conflicts.employees),
        }
    return JSONResponse(status_code=status_for(exc), content=body)


async def _integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=409, content={"detail": "Duplicate booking ID. Please retry."}
    )


async def _stale_data_handler(request: Request, exc: StaleDataError) -> JSONResponse:
    logger.info("Concurrent write rejected on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=409,
        content={"detail": "Booking was modified concurrently. Please retry."},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the booking sweep on startup; stop on shutdown."""
    await _scheduler.start_scheduler()
    yield
    await _scheduler.stop_scheduler()
    await close_redis()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Logistics Dispatch API",
        description=(
            "Books deliveries, binds a vehicle and crew to each trip, tracks "
            "multi-stop delivery progress and keeps fleet availability in "
            "step with the trips."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain and storage errors
    app.add_exception_handler(BookingError, _booking_error_handler)
    app.add_exception_handler(IntegrityError, _integrity_error_handler)
    app.add_exception_handler(StaleDataError, _stale_data_handler)

    # Routers
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(driver.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
