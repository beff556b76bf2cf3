"""
Booking lifecycle policy
========================

The one place that decides whether a booking may change status and what
that change means for the vehicle and crew it holds.

    Pending -> Ready to go -> In Transit -> Delivered -> Completed
       \\_____________________/^            \\___________/^
                                             (single-stop only)

Guards on top of the transition table
-------------------------------------
* ``Ready to go`` is a dispatcher confirmation and is only accepted once the
  booking's ``date_needed`` has arrived.
* ``Delivered`` and ``Completed`` require every Delivery Stop to be
  delivered.  A single-stop booking is the exception: the driver may close
  it directly and its lone stop is marked delivered as part of the move.
* A multi-stop booking cannot jump from ``In Transit`` to ``Completed``;
  the last stop delivery promotes it to ``Delivered`` first.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Optional

from .enums import BOOKING_TRANSITIONS, LOCKED_STATUSES, BookingStatus, ResourceStatus
from .errors import InvalidStateTransition

if TYPE_CHECKING:
    from .entities import Booking


def is_due(booking: "Booking", today: date) -> bool:
    """A booking is due once its service day is today or in the past."""
    return booking.date_needed <= today


def holds_resources(booking: "Booking", today: date) -> bool:
    """
    Whether the booking's vehicle and crew should currently be On Trip:
    it is dispatched, or it is a live Pending booking whose day has come.
    """
    if booking.status in LOCKED_STATUSES:
        return True
    return (
        booking.status is BookingStatus.PENDING
        and not booking.is_archived
        and is_due(booking, today)
    )


def check_transition(
    booking: "Booking", target: BookingStatus, today: date
) -> None:
    """Raise ``InvalidStateTransition`` unless *booking* may move to *target*."""
    current = booking.status
    if target not in BOOKING_TRANSITIONS.get(current, set()):
        raise InvalidStateTransition(
            f"Cannot transition from {current.value} to {target.value}"
        )

    if target is BookingStatus.READY_TO_GO and not is_due(booking, today):
        raise InvalidStateTransition(
            f"Booking {booking.reservation_id} is scheduled for "
            f"{booking.date_needed.isoformat()} and cannot be confirmed yet"
        )

    if target in (BookingStatus.DELIVERED, BookingStatus.COMPLETED):
        if booking.is_single_stop:
            return
        if (
            target is BookingStatus.COMPLETED
            and current is BookingStatus.IN_TRANSIT
        ):
            raise InvalidStateTransition(
                "A multi-stop trip must be Delivered before it is Completed"
            )
        pending = booking.pending_stops()
        if pending:
            raise InvalidStateTransition(
                f"{len(pending)} of {len(booking.destination_deliveries)} "
                f"destinations are still pending"
            )


def resource_status_after(target: BookingStatus) -> Optional[ResourceStatus]:
    """Status the vehicle and crew take when a booking enters *target*."""
    if target in (BookingStatus.READY_TO_GO, BookingStatus.IN_TRANSIT):
        return ResourceStatus.ON_TRIP
    if target in (BookingStatus.DELIVERED, BookingStatus.COMPLETED):
        return ResourceStatus.AVAILABLE
    return None
