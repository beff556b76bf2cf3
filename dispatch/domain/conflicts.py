"""
Schedule conflict evaluation
============================

Given the bookings that already claim resources on a calendar day, decide
whether a candidate vehicle / crew would be double-booked.

The caller is responsible for selecting the bookings (non-archived, status
in ``ACTIVE_STATUSES``, ``date_needed`` on the day, minus the booking being
edited); this module only compares.

Complexity: O(b x e) where b = bookings on the day, e = employees per booking.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .entities import Booking


@dataclass(frozen=True)
class ScheduleConflicts:
    vehicle: bool = False
    employees: list[str] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return self.vehicle or bool(self.employees)


def find_conflicts(
    claimed: Iterable[Booking],
    vehicle_id: str | None,
    employee_ids: Iterable[str],
) -> ScheduleConflicts:
    """
    ``vehicle`` is true iff some claimed booking holds *vehicle_id*;
    ``employees`` is the de-duplicated subset of *employee_ids* that appear
    in any claimed booking's crew, in the order they were requested.
    """
    vehicle_taken = False
    busy: set[str] = set()
    for booking in claimed:
        if vehicle_id and booking.vehicle_id == vehicle_id:
            vehicle_taken = True
        busy.update(booking.employee_assigned)

    conflicting: list[str] = []
    for emp_id in employee_ids:
        if emp_id and emp_id in busy and emp_id not in conflicting:
            conflicting.append(emp_id)
    return ScheduleConflicts(vehicle=vehicle_taken, employees=conflicting)
