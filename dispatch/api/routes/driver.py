"""
Driver endpoints
================

The calling driver is identified by the ``X-Driver-Id`` header and must be
one of the booking's ``employeeAssigned``.

GET  /api/v1/driver/bookings                                 -- my trips
GET  /api/v1/driver/bookings/count                           -- how many
GET  /api/v1/driver/bookings/{id}                            -- one trip
PUT  /api/v1/driver/bookings/{id}/status                     -- start / finish
PUT  /api/v1/driver/bookings/{id}/location                   -- GPS fix
PUT  /api/v1/driver/bookings/{id}/pickup-origin              -- goods loaded
PUT  /api/v1/driver/bookings/{id}/deliver-destination        -- one stop done
PUT  /api/v1/driver/bookings/{id}/set-active-destination     -- route to a stop
POST /api/v1/driver/bookings/{id}/vehicle-change-request     -- ask for a swap
"""

from fastapi import APIRouter, Depends, Query, Request

from dispatch.api.dependencies import get_booking_service, get_driver_id
from dispatch.api.middleware import limiter
from dispatch.api.schemas import (
    ActiveDestinationRequest,
    BookingResponse,
    CountResponse,
    DeliverDestinationRequest,
    DeliveryStopResponse,
    DeliveryUpdateResponse,
    ErrorResponse,
    LocationUpdateRequest,
    OriginPickupRequest,
    StatusUpdateRequest,
    StatusUpdateResponse,
    VehicleChangeRequestIn,
)
from dispatch.config import settings
from dispatch.domain.enums import BookingStatus
from dispatch.services.bookings import BookingService

router = APIRouter(prefix="/driver/bookings", tags=["driver"])


@router.get(
    "",
    response_model=list[BookingResponse],
    summary="List the trips assigned to the calling driver",
)
@limiter.limit(settings.rate_limit)
async def list_my_bookings(
    request: Request,
    include_completed: bool = Query(True, alias="includeCompleted"),
    driver_id: str = Depends(get_driver_id),
    service: BookingService = Depends(get_booking_service),
):
    bookings = await service.list_for_driver(driver_id, include_completed)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get(
    "/count",
    response_model=CountResponse,
    summary="Count the trips assigned to the calling driver",
)
@limiter.limit(settings.rate_limit)
async def count_my_bookings(
    request: Request,
    include_completed: bool = Query(True, alias="includeCompleted"),
    driver_id: str = Depends(get_driver_id),
    service: BookingService = Depends(get_booking_service),
):
    bookings = await service.list_for_driver(driver_id, include_completed)
    return CountResponse(count=len(bookings))


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get one of the calling driver's trips",
)
@limiter.limit(settings.rate_limit)
async def get_my_booking(
    request: Request,
    booking_id: int,
    driver_id: str = Depends(get_driver_id),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.get_for_driver(booking_id, driver_id)
    return BookingResponse.model_validate(booking)


@router.put(
    "/{booking_id}/status",
    response_model=StatusUpdateResponse,
    summary="Start, deliver or complete a trip",
)
@limiter.limit(settings.rate_limit)
async def update_trip_status(
    request: Request,
    booking_id: int,
    body: StatusUpdateRequest,
    driver_id: str = Depends(get_driver_id),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.driver_update_status(
        booking_id, driver_id, body.status, proof=body.proof_of_delivery
    )
    return StatusUpdateResponse.model_validate(booking)


@router.put(
    "/{booking_id}/location",
    response_model=BookingResponse,
    summary="Report the driver's current position",
)
@limiter.limit(settings.rate_limit)
async def update_location(
    request: Request,
    booking_id: int,
    body: LocationUpdateRequest,
    driver_id: str = Depends(get_driver_id),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.update_driver_location(
        booking_id, driver_id, body.latitude, body.longitude, body.accuracy
    )
    return BookingResponse.model_validate(booking)


@router.put(
    "/{booking_id}/pickup-origin",
    response_model=BookingResponse,
    summary="Confirm the goods were picked up at the origin",
    responses={
        409: {
            "model": ErrorResponse,
            "description": "Trip is not In Transit or pickup was already confirmed.",
        },
    },
)
@limiter.limit(settings.rate_limit)
async def confirm_origin_pickup(
    request: Request,
    booking_id: int,
    body: OriginPickupRequest,
    driver_id: str = Depends(get_driver_id),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.confirm_origin_pickup(
        booking_id, driver_id, proof=body.origin_pickup_proof
    )
    return BookingResponse.model_validate(booking)


@router.put(
    "/{booking_id}/deliver-destination",
    response_model=DeliveryUpdateResponse,
    summary="Mark one destination delivered",
    responses={
        404: {
            "model": ErrorResponse,
            "description": "Unknown or already delivered destination.",
        },
        409: {"model": ErrorResponse, "description": "Trip is not In Transit."},
    },
)
@limiter.limit(settings.rate_limit)
async def deliver_destination(
    request: Request,
    booking_id: int,
    body: DeliverDestinationRequest,
    driver_id: str = Depends(get_driver_id),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.mark_destination_delivered(
        booking_id,
        driver_id,
        body.destination_index,
        proof=body.proof_of_delivery,
        notes=body.notes,
    )
    next_stop = booking.next_destination()
    if booking.status is BookingStatus.DELIVERED:
        message = "All destinations delivered"
    else:
        message = f"Destination {body.destination_index} delivered"
    return DeliveryUpdateResponse(
        message=message,
        status=booking.status,
        all_delivered=booking.all_delivered,
        destination_deliveries=[
            DeliveryStopResponse.model_validate(d)
            for d in booking.destination_deliveries
        ],
        next_destination=(
            DeliveryStopResponse.model_validate(next_stop) if next_stop else None
        ),
    )


@router.put(
    "/{booking_id}/set-active-destination",
    response_model=BookingResponse,
    summary="Choose the destination currently being routed to",
)
@limiter.limit(settings.rate_limit)
async def set_active_destination(
    request: Request,
    booking_id: int,
    body: ActiveDestinationRequest,
    driver_id: str = Depends(get_driver_id),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.set_active_destination(
        booking_id, driver_id, body.destination_index
    )
    return BookingResponse.model_validate(booking)


@router.post(
    "/{booking_id}/vehicle-change-request",
    response_model=BookingResponse,
    summary="Ask dispatch for a replacement vehicle",
)
@limiter.limit(settings.rate_limit)
async def request_vehicle_change(
    request: Request,
    booking_id: int,
    body: VehicleChangeRequestIn,
    driver_id: str = Depends(get_driver_id),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.request_vehicle_change(booking_id, driver_id, body.reason)
    return BookingResponse.model_validate(booking)
