"""
Resource Status Synchronizer
============================

Keeps the ``status`` of vehicles and crew in step with the bookings that
reference them.

* ``sync_status`` writes one status to the booking's vehicle and to every
  assigned employee (bulk).  It is idempotent; a dangling vehicle or
  employee id is logged and skipped, never raised, so a stale reference
  cannot block a booking operation.  Storage errors still propagate.
* ``activate_if_due`` is the single activation policy shared by booking
  creation, booking edits and the daily sweep: a Pending, non-archived
  booking whose day has arrived puts its vehicle and crew On Trip.  The
  booking's own ``status`` is left alone; moving it to Ready to go or In
  Transit is an explicit dispatcher / driver action.
* ``reassign`` moves that hold from the old vehicle or crew to the new ones
  when a booking that holds resources is edited or gets a new vehicle.
* ``process_scheduled_bookings`` is the sweep body.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from dispatch.domain import lifecycle
from dispatch.domain.entities import Booking
from dispatch.domain.enums import BookingStatus, ResourceStatus
from dispatch.infrastructure.repositories import (
    BookingRepository,
    EmployeeRepository,
    VehicleRepository,
)
from dispatch.services.clock import local_today

logger = logging.getLogger(__name__)


class ResourceStatusSynchronizer:
    def __init__(self, session: AsyncSession):
        self.vehicles = VehicleRepository(session)
        self.employees = EmployeeRepository(session)

    async def sync_status(self, booking: Booking, new_status: ResourceStatus) -> None:
        if booking.vehicle_id:
            if await self.vehicles.set_status(booking.vehicle_id, new_status):
                logger.info(
                    "Vehicle %s status -> %s", booking.vehicle_id, new_status.value
                )
            else:
                logger.warning(
                    "Vehicle %s not found (booking %s); status unchanged",
                    booking.vehicle_id,
                    booking.reservation_id,
                )

        crew = [e for e in booking.employee_assigned if e]
        if crew:
            updated = await self.employees.set_status_many(crew, new_status)
            logger.info(
                "%d of %d employees on %s -> %s",
                updated,
                len(crew),
                booking.reservation_id,
                new_status.value,
            )

    async def reassign(
        self,
        booking: Booking,
        *,
        released_vehicle: Optional[str] = None,
        released_crew: Iterable[str] = (),
        occupy: bool = True,
    ) -> None:
        """
        Hand resources over after a vehicle or crew change.

        Whatever the booking held before (``released_*``) and no longer uses
        goes back to Available; with ``occupy`` its current vehicle and crew
        are put On Trip.
        """
        keep_vehicle = booking.vehicle_id if occupy else None
        keep_crew = set(booking.employee_assigned) if occupy else set()

        if released_vehicle and released_vehicle != keep_vehicle:
            released = await self.vehicles.set_status(
                released_vehicle, ResourceStatus.AVAILABLE
            )
            if released:
                logger.info(
                    "Vehicle %s released from %s",
                    released_vehicle,
                    booking.reservation_id,
                )
            else:
                logger.warning("Released vehicle %s not found", released_vehicle)

        dropped = [e for e in released_crew if e and e not in keep_crew]
        if dropped:
            await self.employees.set_status_many(dropped, ResourceStatus.AVAILABLE)
            logger.info(
                "Released %s from %s", ", ".join(dropped), booking.reservation_id
            )

        if occupy:
            await self.sync_status(booking, ResourceStatus.ON_TRIP)

    async def activate_if_due(self, booking: Booking, today: date) -> bool:
        """Put the booking's resources On Trip if it is due.  Returns True if so."""
        if booking.status is not BookingStatus.PENDING or not lifecycle.holds_resources(
            booking, today
        ):
            return False
        await self.sync_status(booking, ResourceStatus.ON_TRIP)
        return True


async def process_scheduled_bookings(
    session: AsyncSession, today: Optional[date] = None
) -> list[Booking]:
    """Activate every Pending, non-archived booking dated today or earlier."""
    today = today or local_today()
    sync = ResourceStatusSynchronizer(session)
    due = await BookingRepository(session).list_due_pending(today)
    logger.info("Sweep for %s: %d bookings due", today.isoformat(), len(due))

    activated: list[Booking] = []
    for booking in due:
        if await sync.activate_if_due(booking, today):
            activated.append(booking)
            logger.info("Activated booking %s", booking.reservation_id)
    return activated
