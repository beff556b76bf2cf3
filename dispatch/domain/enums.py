"""Domain enumerations and state-transition rules."""

import enum


class BookingStatus(str, enum.Enum):
    PENDING = "Pending"
    READY_TO_GO = "Ready to go"
    IN_TRANSIT = "In Transit"
    DELIVERED = "Delivered"
    COMPLETED = "Completed"


# State machine: maps current status -> set of valid next statuses
BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.READY_TO_GO, BookingStatus.IN_TRANSIT},
    BookingStatus.READY_TO_GO: {BookingStatus.IN_TRANSIT},
    BookingStatus.IN_TRANSIT: {BookingStatus.DELIVERED, BookingStatus.COMPLETED},
    BookingStatus.DELIVERED: {BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
}

# Bookings in these states may not be edited or archived
LOCKED_STATUSES = frozenset({BookingStatus.READY_TO_GO, BookingStatus.IN_TRANSIT})

# Bookings in these states claim their vehicle and crew for the day
ACTIVE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.READY_TO_GO, BookingStatus.IN_TRANSIT}
)


class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    DELIVERED = "delivered"


class ResourceStatus(str, enum.Enum):
    AVAILABLE = "Available"
    ON_TRIP = "On Trip"


class TripType(str, enum.Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


class AssignmentStatus(str, enum.Enum):
    ACTIVE = "active"
    REPLACED = "replaced"


class ChangeRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
