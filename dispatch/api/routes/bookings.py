"""
Dispatcher booking endpoints
============================

GET    /api/v1/bookings                          -- list (``includeArchived``, ``status``)
GET    /api/v1/bookings/{id}                     -- one booking
GET    /api/v1/bookings/reservation/{rid}        -- lookup by reservation id
GET    /api/v1/bookings/trip/{trip_number}       -- lookup by trip number
POST   /api/v1/bookings                          -- create (always Pending)
POST   /api/v1/bookings/check-conflicts          -- advisory double-booking check
PUT    /api/v1/bookings/{id}                     -- edit (not while dispatched)
PATCH  /api/v1/bookings/{id}/status              -- lifecycle transition
PATCH  /api/v1/bookings/{id}/archive             -- soft delete
PATCH  /api/v1/bookings/{id}/restore             -- undo archive
PATCH  /api/v1/bookings/{id}/vehicle             -- replace the vehicle
DELETE /api/v1/bookings/{id}                     -- hard delete
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from dispatch.api.dependencies import get_booking_service
from dispatch.api.middleware import limiter
from dispatch.api.schemas import (
    BookingCreateRequest,
    BookingCreatedResponse,
    BookingResponse,
    BookingUpdateRequest,
    ConflictCheckRequest,
    ConflictCheckResponse,
    ConflictsResponse,
    ErrorResponse,
    MessageResponse,
    ScheduleConflictResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
    VehicleReplaceRequest,
)
from dispatch.config import settings
from dispatch.domain.enums import BookingStatus
from dispatch.services.bookings import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get(
    "",
    response_model=list[BookingResponse],
    summary="List bookings",
)
@limiter.limit(settings.rate_limit)
async def list_bookings(
    request: Request,
    include_archived: bool = Query(False, alias="includeArchived"),
    status: Optional[BookingStatus] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    bookings = await service.list_bookings(
        include_archived=include_archived, status=status
    )
    return [BookingResponse.model_validate(b) for b in bookings]


@router.post(
    "/check-conflicts",
    response_model=ConflictCheckResponse,
    summary="Check vehicle / crew availability for a day",
)
@limiter.limit(settings.rate_limit)
async def check_conflicts(
    request: Request,
    body: ConflictCheckRequest,
    service: BookingService = Depends(get_booking_service),
):
    conflicts = await service.check_conflicts(
        body.vehicle_id,
        body.employee_ids,
        body.booking_date,
        exclude_id=body.exclude_booking_id,
    )
    return ConflictCheckResponse(
        has_conflicts=conflicts.has_conflicts,
        conflicts=ConflictsResponse.model_validate(conflicts),
    )


@router.get(
    "/reservation/{reservation_id}",
    response_model=BookingResponse,
    summary="Get a booking by reservation id",
)
@limiter.limit(settings.rate_limit)
async def get_by_reservation_id(
    request: Request,
    reservation_id: str,
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.get_by_reservation_id(reservation_id)
    return BookingResponse.model_validate(booking)


@router.get(
    "/trip/{trip_number}",
    response_model=BookingResponse,
    summary="Get a booking by trip number",
)
@limiter.limit(settings.rate_limit)
async def get_by_trip_number(
    request: Request,
    trip_number: str,
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.get_by_trip_number(trip_number)
    return BookingResponse.model_validate(booking)


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get a booking",
)
@limiter.limit(settings.rate_limit)
async def get_booking(
    request: Request,
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.get(booking_id)
    return BookingResponse.model_validate(booking)


@router.post(
    "",
    status_code=201,
    response_model=BookingCreatedResponse,
    summary="Create a booking",
    responses={201: {"description": "Created as Pending; conflicts are advisory."}},
)
@limiter.limit(settings.rate_limit)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    service: BookingService = Depends(get_booking_service),
):
    booking, conflicts = await service.create(body.to_entity())
    created = BookingCreatedResponse.model_validate(booking)
    created.conflicts = ConflictsResponse.model_validate(conflicts)
    return created


@router.put(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Edit a booking",
    responses={
        400: {
            "model": ErrorResponse,
            "description": "Booking is Ready to go or In Transit.",
        },
        409: {
            "model": ScheduleConflictResponse,
            "description": "Vehicle or crew already booked that day.",
        },
    },
)
@limiter.limit(settings.rate_limit)
async def update_booking(
    request: Request,
    booking_id: int,
    body: BookingUpdateRequest,
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.update(booking_id, body.changes())
    return BookingResponse.model_validate(booking)


@router.patch(
    "/{booking_id}/status",
    response_model=StatusUpdateResponse,
    summary="Move a booking to a new status",
)
@limiter.limit(settings.rate_limit)
async def update_status(
    request: Request,
    booking_id: int,
    body: StatusUpdateRequest,
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.update_status(
        booking_id, body.status, proof=body.proof_of_delivery
    )
    return StatusUpdateResponse.model_validate(booking)


@router.patch(
    "/{booking_id}/archive",
    response_model=BookingResponse,
    summary="Archive a booking",
)
@limiter.limit(settings.rate_limit)
async def archive_booking(
    request: Request,
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
):
    return BookingResponse.model_validate(await service.archive(booking_id))


@router.patch(
    "/{booking_id}/restore",
    response_model=BookingResponse,
    summary="Restore an archived booking",
)
@limiter.limit(settings.rate_limit)
async def restore_booking(
    request: Request,
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
):
    return BookingResponse.model_validate(await service.restore(booking_id))


@router.patch(
    "/{booking_id}/vehicle",
    response_model=BookingResponse,
    summary="Replace the booking's vehicle",
)
@limiter.limit(settings.rate_limit)
async def replace_vehicle(
    request: Request,
    booking_id: int,
    body: VehicleReplaceRequest,
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.replace_vehicle(
        booking_id,
        body.vehicle_id,
        body.vehicle_type,
        body.plate_number,
        reason=body.reason,
    )
    return BookingResponse.model_validate(booking)


@router.delete(
    "/{booking_id}",
    response_model=MessageResponse,
    summary="Delete a booking permanently",
)
@limiter.limit(settings.rate_limit)
async def delete_booking(
    request: Request,
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
):
    await service.delete(booking_id)
    return MessageResponse(message="Booking deleted successfully")
