"""Exception taxonomy for booking operations.

Every rejected operation raises one of these *before* anything is written,
so the stored booking is left exactly as it was.
"""


class BookingError(Exception):
    """Base class for all booking rule violations."""


class BookingNotFound(BookingError):
    pass


class DeliveryStopNotFound(BookingError):
    pass


class StopAlreadyDelivered(DeliveryStopNotFound):
    """A delivered stop is never reopened or overwritten."""


class InvalidStateTransition(BookingError):
    """Raised when a booking status change violates the state machine."""


class BookingLocked(InvalidStateTransition):
    """Edit or archive attempted while the trip is dispatched."""


class ScheduleConflict(BookingError):
    def __init__(self, message: str, conflicts) -> None:
        super().__init__(message)
        self.conflicts = conflicts


class DriverNotAssigned(BookingError):
    pass


class VehicleChangeAlreadyPending(BookingError):
    pass


class InvalidBooking(BookingError):
    """Booking data that can never be persisted, e.g. no destinations."""
