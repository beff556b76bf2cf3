"""
Admin / observability endpoints
===============================

GET  /api/v1/admin/active-trips       -- In Transit trips with progress and GPS
POST /api/v1/admin/process-scheduled  -- run the due-booking sweep now
GET  /api/v1/admin/health             -- liveness plus Redis reachability
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch.api.dependencies import get_booking_service, get_db
from dispatch.api.middleware import limiter
from dispatch.api.schemas import (
    ActiveTripResponse,
    DeliveryProgress,
    DeliveryStopResponse,
    GeoFixResponse,
    HealthResponse,
    SweepResponse,
)
from dispatch.config import settings
from dispatch.infrastructure.redis_client import redis_available
from dispatch.services.bookings import BookingService
from dispatch.services.resource_sync import process_scheduled_bookings

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/active-trips",
    response_model=list[ActiveTripResponse],
    summary="List trips currently In Transit",
)
@limiter.limit(settings.rate_limit)
async def get_active_trips(
    request: Request,
    service: BookingService = Depends(get_booking_service),
):
    trips = await service.list_active_trips()
    result: list[ActiveTripResponse] = []
    for b in trips:
        next_stop = b.next_destination()
        result.append(
            ActiveTripResponse(
                id=b.id,
                reservation_id=b.reservation_id,
                trip_number=b.trip_number,
                plate_number=b.plate_number,
                driver_id=b.driver_id,
                date_needed=b.date_needed,
                driver_location=(
                    GeoFixResponse.model_validate(b.driver_location)
                    if b.driver_location
                    else None
                ),
                progress=DeliveryProgress(**b.delivery_progress()),
                next_destination=(
                    DeliveryStopResponse.model_validate(next_stop)
                    if next_stop
                    else None
                ),
            )
        )
    return result


@router.post(
    "/process-scheduled",
    response_model=SweepResponse,
    summary="Activate every due Pending booking now",
)
@limiter.limit(settings.rate_limit)
async def process_scheduled(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    activated = await process_scheduled_bookings(db)
    return SweepResponse(
        activated=len(activated),
        reservation_ids=[b.reservation_id for b in activated],
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    # The API itself is up even when Redis is not; only the sweep needs it
    return HealthResponse(redis="ok" if await redis_available() else "unavailable")
