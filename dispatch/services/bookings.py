"""
Booking use cases
=================

``BookingService`` is what the dispatcher and driver routers call.  Every
mutation follows the same optimistic shape:

1. read the booking,
2. let the entity validate the change against that state (raising leaves
   the stored document untouched),
3. write the whole document back (``StaleDataError`` if someone else wrote
   in between),
4. propagate the booking's new activity onto its vehicle and crew.

Conflict checks are advisory on create and blocking on edit.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from dispatch.domain import lifecycle
from dispatch.domain.conflicts import ScheduleConflicts, find_conflicts
from dispatch.domain.entities import Booking, DeliveryStop
from dispatch.domain.enums import BookingStatus, ResourceStatus
from dispatch.domain.errors import (
    BookingNotFound,
    DriverNotAssigned,
    InvalidBooking,
    InvalidStateTransition,
    ScheduleConflict,
)
from dispatch.infrastructure.repositories import BookingRepository
from dispatch.infrastructure.sequences import DatabaseSequenceStore
from dispatch.services.clock import local_today, utcnow
from dispatch.services.identifiers import IdentifierGenerator
from dispatch.services.resource_sync import ResourceStatusSynchronizer

logger = logging.getLogger(__name__)

# Fields a dispatcher edit may touch; identifiers and status are excluded
EDITABLE_FIELDS = (
    "company_name",
    "origin_address",
    "destination_deliveries",
    "vehicle_id",
    "vehicle_type",
    "plate_number",
    "date_needed",
    "time_needed",
    "employee_assigned",
    "role_of_employee",
    "delivery_fee",
    "total_distance",
)

_SCHEDULE_FIELDS = ("date_needed", "vehicle_id", "employee_assigned")


def default_roles(employee_ids: list[str]) -> list[str]:
    """First crew member drives; the rest are helpers."""
    return ["Driver" if i == 0 else "Helper" for i, _ in enumerate(employee_ids)]


class BookingService:
    def __init__(
        self,
        session: AsyncSession,
        identifiers: Optional[IdentifierGenerator] = None,
    ):
        self.session = session
        self.bookings = BookingRepository(session)
        self.resources = ResourceStatusSynchronizer(session)
        self.identifiers = identifiers or IdentifierGenerator(
            DatabaseSequenceStore(session)
        )

    # ── Reads ─────────────────────────────────────────────────────

    async def get(self, booking_id: int) -> Booking:
        booking = await self.bookings.get_by_id(booking_id)
        if booking is None:
            raise BookingNotFound(f"Booking {booking_id} not found")
        return booking

    async def get_by_reservation_id(self, reservation_id: str) -> Booking:
        booking = await self.bookings.get_by_reservation_id(reservation_id)
        if booking is None:
            raise BookingNotFound(f"Booking {reservation_id} not found")
        return booking

    async def get_by_trip_number(self, trip_number: str) -> Booking:
        booking = await self.bookings.get_by_trip_number(trip_number)
        if booking is None:
            raise BookingNotFound(f"Booking {trip_number} not found")
        return booking

    async def list_bookings(
        self,
        include_archived: bool = False,
        status: Optional[BookingStatus] = None,
    ) -> list[Booking]:
        return await self.bookings.list_all(
            include_archived=include_archived, status=status
        )

    async def list_active_trips(self) -> list[Booking]:
        return await self.bookings.list_all(status=BookingStatus.IN_TRANSIT)

    async def check_conflicts(
        self,
        vehicle_id: Optional[str],
        employee_ids: Iterable[str],
        day: date,
        exclude_id: Optional[int] = None,
    ) -> ScheduleConflicts:
        claimed = await self.bookings.list_claimed_on_day(day, exclude_id)
        return find_conflicts(claimed, vehicle_id, employee_ids)

    # ── Dispatcher operations ─────────────────────────────────────

    async def create(
        self, draft: Booking, today: Optional[date] = None
    ) -> tuple[Booking, ScheduleConflicts]:
        if not draft.destination_deliveries:
            raise InvalidBooking("destinationDeliveries is required and cannot be empty")
        today = today or local_today()

        draft.reservation_id = await self.identifiers.next_reservation_id()
        draft.trip_number = await self.identifiers.next_trip_number()
        draft.status = BookingStatus.PENDING
        draft.is_archived = False
        draft.set_destinations(draft.destination_deliveries)
        if not draft.role_of_employee:
            draft.role_of_employee = default_roles(draft.employee_assigned)
        draft.vehicle_history = []
        draft.assign_vehicle(
            draft.vehicle_id, draft.vehicle_type, draft.plate_number, now=utcnow()
        )

        conflicts = await self.check_conflicts(
            draft.vehicle_id, draft.employee_assigned, draft.date_needed
        )
        if conflicts.has_conflicts:
            logger.warning(
                "Booking %s created with schedule conflicts on %s: "
                "vehicle=%s employees=%s",
                draft.reservation_id,
                draft.date_needed.isoformat(),
                conflicts.vehicle,
                conflicts.employees,
            )

        booking = await self.bookings.add(draft)
        logger.info(
            "Created booking %s / %s for %s",
            booking.reservation_id,
            booking.trip_number,
            booking.date_needed.isoformat(),
        )
        await self.resources.activate_if_due(booking, today)
        return booking, conflicts

    async def update(
        self,
        booking_id: int,
        changes: dict[str, Any],
        today: Optional[date] = None,
    ) -> Booking:
        today = today or local_today()
        booking = await self.get(booking_id)
        booking.ensure_editable()
        held_before = lifecycle.holds_resources(booking, today)
        old_vehicle = booking.vehicle_id
        old_crew = list(booking.employee_assigned)

        changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        schedule_changed = any(
            k in changes and changes[k] != getattr(booking, k)
            for k in _SCHEDULE_FIELDS
        )
        if schedule_changed:
            conflicts = await self.check_conflicts(
                changes.get("vehicle_id", booking.vehicle_id),
                changes.get("employee_assigned", booking.employee_assigned),
                changes.get("date_needed", booking.date_needed),
                exclude_id=booking.id,
            )
            if conflicts.has_conflicts:
                raise ScheduleConflict(
                    "Vehicle or crew already booked on that date", conflicts
                )

        stops: Optional[list[DeliveryStop]] = changes.pop("destination_deliveries", None)
        if stops is not None:
            if not stops:
                raise InvalidBooking("destinationDeliveries cannot be empty")
            booking.set_destinations(stops)

        new_vehicle = changes.pop("vehicle_id", booking.vehicle_id)
        vehicle_type = changes.pop("vehicle_type", booking.vehicle_type)
        plate_number = changes.pop("plate_number", booking.plate_number)
        if new_vehicle != booking.vehicle_id:
            booking.assign_vehicle(
                new_vehicle, vehicle_type, plate_number,
                reason="Booking edited", now=utcnow(),
            )
        else:
            booking.vehicle_type = vehicle_type
            booking.plate_number = plate_number

        for key, value in changes.items():
            setattr(booking, key, value)

        saved = await self.bookings.save(booking)
        if schedule_changed:
            await self.resources.reassign(
                saved,
                released_vehicle=old_vehicle if held_before else None,
                released_crew=old_crew if held_before else (),
                occupy=lifecycle.holds_resources(saved, today),
            )
        return saved

    async def update_status(
        self,
        booking_id: int,
        status: BookingStatus,
        *,
        actor: Optional[str] = None,
        proof: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Booking:
        booking = await self.get(booking_id)
        return await self._transition(booking, status, actor, proof, today)

    async def archive(self, booking_id: int) -> Booking:
        booking = await self.get(booking_id)
        booking.archive()
        return await self.bookings.save(booking)

    async def restore(self, booking_id: int) -> Booking:
        booking = await self.get(booking_id)
        booking.restore()
        return await self.bookings.save(booking)

    async def delete(self, booking_id: int) -> None:
        # Hard delete; resources are deliberately left as they are
        if not await self.bookings.delete(booking_id):
            raise BookingNotFound(f"Booking {booking_id} not found")
        logger.info("Deleted booking %s", booking_id)

    async def replace_vehicle(
        self,
        booking_id: int,
        vehicle_id: str,
        vehicle_type: str,
        plate_number: str,
        reason: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Booking:
        booking = await self.get(booking_id)
        if booking.status is BookingStatus.COMPLETED:
            raise InvalidStateTransition("Cannot change the vehicle of a completed trip")
        closed = booking.assign_vehicle(
            vehicle_id, vehicle_type, plate_number, reason=reason, now=utcnow()
        )
        saved = await self.bookings.save(booking)
        if lifecycle.holds_resources(saved, today or local_today()):
            await self.resources.reassign(
                saved, released_vehicle=closed.vehicle_id if closed else None
            )
        logger.info(
            "Booking %s vehicle -> %s (%s)", saved.reservation_id, vehicle_id, reason
        )
        return saved

    # ── Driver operations ─────────────────────────────────────────

    async def list_for_driver(
        self, driver_id: str, include_completed: bool = True
    ) -> list[Booking]:
        bookings = await self.bookings.list_for_employee(driver_id)
        if not include_completed:
            bookings = [b for b in bookings if b.status is not BookingStatus.COMPLETED]
        return bookings

    async def get_for_driver(self, booking_id: int, driver_id: str) -> Booking:
        booking = await self.get(booking_id)
        if driver_id not in booking.employee_assigned:
            raise DriverNotAssigned(
                f"Driver {driver_id} is not assigned to booking {booking.reservation_id}"
            )
        return booking

    async def driver_update_status(
        self,
        booking_id: int,
        driver_id: str,
        status: BookingStatus,
        proof: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Booking:
        booking = await self.get_for_driver(booking_id, driver_id)
        return await self._transition(booking, status, driver_id, proof, today)

    async def mark_destination_delivered(
        self,
        booking_id: int,
        driver_id: str,
        destination_index: int,
        proof: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Booking:
        booking = await self.get_for_driver(booking_id, driver_id)
        promoted = booking.mark_stop_delivered(
            destination_index, by=driver_id, proof=proof, notes=notes, now=utcnow()
        )
        saved = await self.bookings.save(booking)
        logger.info(
            "Booking %s destination %d delivered by %s",
            saved.reservation_id,
            destination_index,
            driver_id,
        )
        if promoted:
            await self.resources.sync_status(saved, ResourceStatus.AVAILABLE)
        return saved

    async def set_active_destination(
        self, booking_id: int, driver_id: str, destination_index: int
    ) -> Booking:
        booking = await self.get_for_driver(booking_id, driver_id)
        booking.set_active_destination(destination_index)
        return await self.bookings.save(booking)

    async def update_driver_location(
        self,
        booking_id: int,
        driver_id: str,
        latitude: float,
        longitude: float,
        accuracy: Optional[float] = None,
    ) -> Booking:
        booking = await self.get_for_driver(booking_id, driver_id)
        booking.record_location(latitude, longitude, accuracy, now=utcnow())
        return await self.bookings.save(booking)

    async def confirm_origin_pickup(
        self, booking_id: int, driver_id: str, proof: Optional[str] = None
    ) -> Booking:
        booking = await self.get_for_driver(booking_id, driver_id)
        booking.confirm_origin_pickup(proof, now=utcnow())
        saved = await self.bookings.save(booking)
        logger.info(
            "Booking %s picked up at origin by %s", saved.reservation_id, driver_id
        )
        return saved

    async def request_vehicle_change(
        self, booking_id: int, driver_id: str, reason: str
    ) -> Booking:
        booking = await self.get_for_driver(booking_id, driver_id)
        booking.request_vehicle_change(reason, now=utcnow())
        saved = await self.bookings.save(booking)
        logger.info("Vehicle change requested on %s: %s", saved.reservation_id, reason)
        return saved

    # ── Internals ─────────────────────────────────────────────────

    async def _transition(
        self,
        booking: Booking,
        status: BookingStatus,
        actor: Optional[str],
        proof: Optional[str],
        today: Optional[date],
    ) -> Booking:
        previous = booking.status
        booking.transition_to(
            status, today=today or local_today(), actor=actor, proof=proof, now=utcnow()
        )
        saved = await self.bookings.save(booking)
        logger.info(
            "Booking %s: %s -> %s", saved.reservation_id, previous.value, status.value
        )

        resource_status = lifecycle.resource_status_after(status)
        if resource_status is not None:
            await self.resources.sync_status(saved, resource_status)
        return saved
