"""Pydantic request / response schemas for the REST API.

JSON bodies use camelCase (``destinationDeliveries``, ``dateNeeded``) to
match the dispatcher and driver clients; snake_case names are accepted too.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from dispatch.config import settings
from dispatch.domain.entities import Booking, DeliveryStop
from dispatch.domain.enums import (
    AssignmentStatus,
    BookingStatus,
    ChangeRequestStatus,
    DeliveryStatus,
    TripType,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _check_proof_size(value: Optional[str]) -> Optional[str]:
    # base64 carries 4 chars per 3 bytes
    if value and len(value) * 0.75 / (1024 * 1024) > settings.max_proof_size_mb:
        raise ValueError(
            f"Proof of delivery image must be less than "
            f"{settings.max_proof_size_mb:g}MB"
        )
    return value


def _to_day(value: Any) -> Any:
    """Accept a date, a datetime or an ISO timestamp; keep only the day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


# ── Requests ──────────────────────────────────────────────────────────


class DeliveryStopIn(CamelModel):
    customer_establishment_name: str = Field(..., min_length=1)
    destination_address: str = Field(..., min_length=1)
    product_name: str = Field(..., min_length=1)
    quantity: float = Field(..., ge=0)
    gross_weight: float = Field(..., ge=0)
    unit_per_package: float = Field(..., ge=0)
    number_of_packages: int = Field(..., ge=0)

    def to_entity(self, position: int) -> DeliveryStop:
        return DeliveryStop(destination_index=position, **self.model_dump())


class BookingCreateRequest(CamelModel):
    company_name: str = Field(..., min_length=1)
    origin_address: str = Field(..., min_length=1)
    destination_deliveries: list[DeliveryStopIn] = Field(..., min_length=1)
    vehicle_id: str = Field(..., min_length=1)
    vehicle_type: str = Field(..., min_length=1)
    plate_number: str = Field(..., min_length=1)
    date_needed: date
    time_needed: str = Field(..., min_length=1)
    employee_assigned: list[str] = []
    role_of_employee: list[str] = []
    delivery_fee: float = Field(0.0, ge=0)
    total_distance: float = Field(0.0, ge=0)

    _day = field_validator("date_needed", mode="before")(_to_day)

    def to_entity(self) -> Booking:
        return Booking(
            company_name=self.company_name,
            origin_address=self.origin_address,
            destination_deliveries=[
                d.to_entity(i) for i, d in enumerate(self.destination_deliveries)
            ],
            vehicle_id=self.vehicle_id,
            vehicle_type=self.vehicle_type,
            plate_number=self.plate_number,
            date_needed=self.date_needed,
            time_needed=self.time_needed,
            employee_assigned=[e for e in self.employee_assigned if e],
            role_of_employee=list(self.role_of_employee),
            delivery_fee=self.delivery_fee,
            total_distance=self.total_distance,
        )


class BookingUpdateRequest(CamelModel):
    company_name: Optional[str] = Field(None, min_length=1)
    origin_address: Optional[str] = Field(None, min_length=1)
    destination_deliveries: Optional[list[DeliveryStopIn]] = Field(None, min_length=1)
    vehicle_id: Optional[str] = Field(None, min_length=1)
    vehicle_type: Optional[str] = Field(None, min_length=1)
    plate_number: Optional[str] = Field(None, min_length=1)
    date_needed: Optional[date] = None
    time_needed: Optional[str] = Field(None, min_length=1)
    employee_assigned: Optional[list[str]] = None
    role_of_employee: Optional[list[str]] = None
    delivery_fee: Optional[float] = Field(None, ge=0)
    total_distance: Optional[float] = Field(None, ge=0)

    _day = field_validator("date_needed", mode="before")(_to_day)

    def changes(self) -> dict[str, Any]:
        """Only the fields the client sent, stops converted to entities."""
        sent = {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }
        if "destination_deliveries" in sent:
            sent["destination_deliveries"] = [
                d.to_entity(i) for i, d in enumerate(self.destination_deliveries)
            ]
        if "employee_assigned" in sent:
            sent["employee_assigned"] = [e for e in sent["employee_assigned"] if e]
        return sent


class StatusUpdateRequest(CamelModel):
    status: BookingStatus
    proof_of_delivery: Optional[str] = None

    _proof = field_validator("proof_of_delivery")(_check_proof_size)


class ConflictCheckRequest(CamelModel):
    vehicle_id: Optional[str] = None
    employee_ids: list[str] = []
    booking_date: date
    exclude_booking_id: Optional[int] = None

    _day = field_validator("booking_date", mode="before")(_to_day)


class VehicleReplaceRequest(CamelModel):
    vehicle_id: str = Field(..., min_length=1)
    vehicle_type: str = Field(..., min_length=1)
    plate_number: str = Field(..., min_length=1)
    reason: Optional[str] = None


class DeliverDestinationRequest(CamelModel):
    destination_index: int = Field(..., ge=0)
    proof_of_delivery: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)

    _proof = field_validator("proof_of_delivery")(_check_proof_size)


class ActiveDestinationRequest(CamelModel):
    destination_index: int = Field(..., ge=0)


class LocationUpdateRequest(CamelModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0)


class OriginPickupRequest(CamelModel):
    origin_pickup_proof: Optional[str] = None

    _proof = field_validator("origin_pickup_proof")(_check_proof_size)


class VehicleChangeRequestIn(CamelModel):
    reason: str = Field(..., min_length=1)


# ── Responses ─────────────────────────────────────────────────────────


class DeliveryStopResponse(CamelModel):
    destination_index: int
    customer_establishment_name: str
    destination_address: str
    product_name: str
    quantity: float
    gross_weight: float
    unit_per_package: float
    number_of_packages: int
    status: DeliveryStatus
    delivered_at: Optional[datetime] = None
    delivered_by: Optional[str] = None
    proof_of_delivery: Optional[str] = None
    notes: Optional[str] = None


class VehicleAssignmentResponse(CamelModel):
    vehicle_id: str
    vehicle_type: str
    plate_number: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    reason: Optional[str] = None
    status: AssignmentStatus


class VehicleChangeRequestResponse(CamelModel):
    requested: bool
    requested_at: Optional[datetime] = None
    reason: Optional[str] = None
    status: ChangeRequestStatus
    approved_at: Optional[datetime] = None


class GeoFixResponse(CamelModel):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    last_updated: Optional[datetime] = None


class BookingResponse(CamelModel):
    id: int
    reservation_id: str
    trip_number: str
    company_name: str
    origin_address: str
    origin_picked_up: bool = False
    origin_pickup_at: Optional[datetime] = None
    origin_pickup_proof: Optional[str] = None
    trip_type: TripType
    number_of_stops: int
    destination_deliveries: list[DeliveryStopResponse]
    active_destination_index: Optional[int] = None
    vehicle_id: str
    vehicle_type: str
    plate_number: str
    vehicle_history: list[VehicleAssignmentResponse] = []
    vehicle_change_request: Optional[VehicleChangeRequestResponse] = None
    date_needed: date
    time_needed: str
    employee_assigned: list[str]
    role_of_employee: list[str]
    status: BookingStatus
    is_archived: bool
    proof_of_delivery: Optional[str] = None
    driver_location: Optional[GeoFixResponse] = None
    delivery_fee: float
    total_distance: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StatusUpdateResponse(CamelModel):
    id: int
    reservation_id: str
    trip_number: str
    status: BookingStatus
    updated_at: Optional[datetime] = None


class ConflictsResponse(CamelModel):
    vehicle: bool
    employees: list[str]


class ConflictCheckResponse(CamelModel):
    has_conflicts: bool
    conflicts: ConflictsResponse


class BookingCreatedResponse(BookingResponse):
    conflicts: Optional[ConflictsResponse] = None


class DeliveryProgress(CamelModel):
    total: int
    delivered: int
    pending: int


class DeliveryUpdateResponse(CamelModel):
    message: str
    status: BookingStatus
    all_delivered: bool
    destination_deliveries: list[DeliveryStopResponse]
    next_destination: Optional[DeliveryStopResponse] = None


class ActiveTripResponse(CamelModel):
    id: int
    reservation_id: str
    trip_number: str
    plate_number: str
    driver_id: Optional[str] = None
    date_needed: date
    driver_location: Optional[GeoFixResponse] = None
    progress: DeliveryProgress
    next_destination: Optional[DeliveryStopResponse] = None


class CountResponse(CamelModel):
    count: int


class SweepResponse(CamelModel):
    activated: int
    reservation_ids: list[str]


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str = "ok"
    redis: str = "ok"


class ErrorResponse(BaseModel):
    detail: str


class ScheduleConflictResponse(ErrorResponse):
    conflicts: ConflictsResponse
