"""
Domain entities with business logic.

Patterns used
-------------
- **Aggregate root** ``Booking``: owns its Delivery Stops, vehicle history,
  change request and GPS fix.  The whole booking is the unit of persistence,
  so every rule below is checked against the state that was just read and
  nothing is mutated until the check has passed.
- **State Pattern** via ``Booking.transition_to``, which defers to
  ``lifecycle.check_transition`` for legality.
- **Multi-stop tracker**: ``mark_stop_delivered``, ``next_destination`` and
  ``all_delivered`` maintain the per-stop sub-state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from . import lifecycle
from .enums import (
    AssignmentStatus,
    BookingStatus,
    ChangeRequestStatus,
    DeliveryStatus,
    LOCKED_STATUSES,
    TripType,
)
from .errors import (
    BookingLocked,
    DeliveryStopNotFound,
    InvalidStateTransition,
    StopAlreadyDelivered,
    VehicleChangeAlreadyPending,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class GeoFix:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    last_updated: Optional[datetime] = None


# ── Sub-entities ──────────────────────────────────────────────────────


@dataclass
class DeliveryStop:
    destination_index: int
    customer_establishment_name: str
    destination_address: str
    product_name: str
    quantity: float
    gross_weight: float
    unit_per_package: float
    number_of_packages: int
    status: DeliveryStatus = DeliveryStatus.PENDING
    delivered_at: Optional[datetime] = None
    delivered_by: Optional[str] = None
    proof_of_delivery: Optional[str] = None
    notes: Optional[str] = None

    @property
    def is_delivered(self) -> bool:
        return self.status is DeliveryStatus.DELIVERED

    def mark_delivered(
        self,
        *,
        by: Optional[str],
        proof: Optional[str] = None,
        notes: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> None:
        """Record the delivery.  Happens exactly once per stop."""
        if self.is_delivered:
            raise StopAlreadyDelivered(
                f"Destination {self.destination_index} was already delivered"
            )
        self.status = DeliveryStatus.DELIVERED
        self.delivered_at = at or _utcnow()
        self.delivered_by = by
        self.proof_of_delivery = proof
        self.notes = notes


@dataclass
class VehicleAssignment:
    vehicle_id: str
    vehicle_type: str
    plate_number: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    reason: Optional[str] = None
    status: AssignmentStatus = AssignmentStatus.ACTIVE


@dataclass
class VehicleChangeRequest:
    requested: bool = False
    requested_at: Optional[datetime] = None
    reason: Optional[str] = None
    status: ChangeRequestStatus = ChangeRequestStatus.PENDING
    approved_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.requested and self.status is ChangeRequestStatus.PENDING


# ── Aggregate root ────────────────────────────────────────────────────


@dataclass
class Booking:
    id: Optional[int] = None
    reservation_id: str = ""
    trip_number: str = ""
    company_name: str = ""
    origin_address: str = ""
    origin_picked_up: bool = False
    origin_pickup_at: Optional[datetime] = None
    origin_pickup_proof: Optional[str] = None
    destination_deliveries: list[DeliveryStop] = field(default_factory=list)
    vehicle_id: str = ""
    vehicle_type: str = ""
    plate_number: str = ""
    vehicle_history: list[VehicleAssignment] = field(default_factory=list)
    vehicle_change_request: Optional[VehicleChangeRequest] = None
    date_needed: date = field(default_factory=date.today)
    time_needed: str = ""
    employee_assigned: list[str] = field(default_factory=list)
    role_of_employee: list[str] = field(default_factory=list)
    status: BookingStatus = BookingStatus.PENDING
    is_archived: bool = False
    active_destination_index: Optional[int] = None
    proof_of_delivery: Optional[str] = None
    driver_location: Optional[GeoFix] = None
    delivery_fee: float = 0.0
    total_distance: float = 0.0
    version: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # ── Derived views ─────────────────────────────────────────────

    @property
    def number_of_stops(self) -> int:
        return len(self.destination_deliveries)

    @property
    def trip_type(self) -> TripType:
        return TripType.MULTIPLE if self.number_of_stops > 1 else TripType.SINGLE

    @property
    def is_single_stop(self) -> bool:
        return self.number_of_stops == 1

    @property
    def primary_destination(self) -> Optional[DeliveryStop]:
        """First stop in sequence, for single-stop displays."""
        if not self.destination_deliveries:
            return None
        return min(self.destination_deliveries, key=lambda d: d.destination_index)

    @property
    def driver_id(self) -> Optional[str]:
        return self.employee_assigned[0] if self.employee_assigned else None

    @property
    def is_locked(self) -> bool:
        return self.status in LOCKED_STATUSES

    @property
    def all_delivered(self) -> bool:
        return bool(self.destination_deliveries) and all(
            d.is_delivered for d in self.destination_deliveries
        )

    def pending_stops(self) -> list[DeliveryStop]:
        return sorted(
            (d for d in self.destination_deliveries if not d.is_delivered),
            key=lambda d: d.destination_index,
        )

    def delivery_progress(self) -> dict[str, int]:
        total = self.number_of_stops
        pending = len(self.pending_stops())
        return {"total": total, "delivered": total - pending, "pending": pending}

    def stop(self, destination_index: int) -> DeliveryStop:
        for d in self.destination_deliveries:
            if d.destination_index == destination_index:
                return d
        raise DeliveryStopNotFound(
            f"Destination {destination_index} not found on booking "
            f"{self.reservation_id}"
        )

    # ── Stop sequence ─────────────────────────────────────────────

    def set_destinations(self, stops: list[DeliveryStop]) -> None:
        """Replace the stop list, numbering stops by position."""
        if any(d.is_delivered for d in self.destination_deliveries):
            raise InvalidStateTransition(
                "Destinations cannot be replaced after a delivery was recorded"
            )
        for position, stop in enumerate(stops):
            stop.destination_index = position
        self.destination_deliveries = list(stops)
        self.active_destination_index = None

    def next_destination(self) -> Optional[DeliveryStop]:
        """The driver's chosen stop while it is pending, else the lowest pending."""
        if self.active_destination_index is not None:
            for d in self.destination_deliveries:
                if (
                    d.destination_index == self.active_destination_index
                    and not d.is_delivered
                ):
                    return d
        pending = self.pending_stops()
        return pending[0] if pending else None

    def set_active_destination(self, destination_index: int) -> DeliveryStop:
        stop = self.stop(destination_index)
        if stop.is_delivered:
            raise StopAlreadyDelivered(
                f"Destination {destination_index} was already delivered"
            )
        self.active_destination_index = destination_index
        return stop

    def mark_stop_delivered(
        self,
        destination_index: int,
        *,
        by: Optional[str],
        proof: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Deliver one stop.  Returns ``True`` when this promoted the booking
        to ``Delivered`` (last pending stop of a multi-stop trip).
        """
        stop = self.stop(destination_index)
        if stop.is_delivered:
            raise StopAlreadyDelivered(
                f"Destination {destination_index} was already delivered"
            )
        if self.status is not BookingStatus.IN_TRANSIT:
            raise InvalidStateTransition(
                f"Stops can only be delivered while In Transit "
                f"(booking is {self.status.value})"
            )

        stop.mark_delivered(by=by, proof=proof, notes=notes, at=now)
        if self.active_destination_index == destination_index:
            self.active_destination_index = None

        if self.trip_type is TripType.MULTIPLE and self.all_delivered:
            self.status = BookingStatus.DELIVERED
            return True
        return False

    # ── Lifecycle ─────────────────────────────────────────────────

    def transition_to(
        self,
        new_status: BookingStatus,
        *,
        today: Optional[date] = None,
        actor: Optional[str] = None,
        proof: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        lifecycle.check_transition(self, new_status, today or date.today())

        if new_status in (BookingStatus.DELIVERED, BookingStatus.COMPLETED):
            lone = self.primary_destination if self.is_single_stop else None
            if lone is not None and not lone.is_delivered:
                lone.mark_delivered(by=actor, proof=proof, at=now)
        if new_status is BookingStatus.COMPLETED and proof:
            self.proof_of_delivery = proof
        self.status = new_status

    def ensure_editable(self) -> None:
        if self.is_locked:
            raise BookingLocked(
                f"Cannot edit booking while {self.status.value.lower()}"
            )

    def archive(self) -> None:
        if self.is_locked:
            raise BookingLocked(
                f"Cannot archive booking while {self.status.value.lower()}"
            )
        self.is_archived = True

    def restore(self) -> None:
        self.is_archived = False

    # ── Vehicle assignment ────────────────────────────────────────

    def assign_vehicle(
        self,
        vehicle_id: str,
        vehicle_type: str,
        plate_number: str,
        *,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[VehicleAssignment]:
        """
        Make *vehicle_id* the current vehicle.  The open history record is
        closed as ``replaced``; it is returned so callers can release it.
        """
        now = now or _utcnow()
        closed = None
        for record in self.vehicle_history:
            if record.status is AssignmentStatus.ACTIVE:
                record.status = AssignmentStatus.REPLACED
                record.ended_at = now
                record.reason = reason
                closed = record
        self.vehicle_history.append(
            VehicleAssignment(
                vehicle_id=vehicle_id,
                vehicle_type=vehicle_type,
                plate_number=plate_number,
                started_at=now,
            )
        )
        self.vehicle_id = vehicle_id
        self.vehicle_type = vehicle_type
        self.plate_number = plate_number

        if self.vehicle_change_request and self.vehicle_change_request.is_pending:
            self.vehicle_change_request.status = ChangeRequestStatus.APPROVED
            self.vehicle_change_request.approved_at = now
        return closed

    def request_vehicle_change(
        self, reason: str, now: Optional[datetime] = None
    ) -> VehicleChangeRequest:
        if self.vehicle_change_request and self.vehicle_change_request.is_pending:
            raise VehicleChangeAlreadyPending(
                f"Booking {self.reservation_id} already has a pending "
                f"vehicle change request"
            )
        self.vehicle_change_request = VehicleChangeRequest(
            requested=True, requested_at=now or _utcnow(), reason=reason
        )
        return self.vehicle_change_request

    # ── Tracking ──────────────────────────────────────────────────

    def confirm_origin_pickup(
        self, proof: Optional[str] = None, now: Optional[datetime] = None
    ) -> None:
        """Driver has loaded the goods at the origin; the route now leads to the stops."""
        if self.status is not BookingStatus.IN_TRANSIT:
            raise InvalidStateTransition(
                f"Origin pickup can only be confirmed while In Transit "
                f"(booking is {self.status.value})"
            )
        if self.origin_picked_up:
            raise InvalidStateTransition(
                f"Origin pickup for {self.reservation_id} was already confirmed"
            )
        self.origin_picked_up = True
        self.origin_pickup_at = now or _utcnow()
        self.origin_pickup_proof = proof

    def record_location(
        self,
        latitude: float,
        longitude: float,
        accuracy: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> GeoFix:
        if self.status is not BookingStatus.IN_TRANSIT:
            raise InvalidStateTransition(
                f"Location is only tracked while In Transit "
                f"(booking is {self.status.value})"
            )
        self.driver_location = GeoFix(
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            last_updated=now or _utcnow(),
        )
        return self.driver_location
