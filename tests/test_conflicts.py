"""Tests for schedule conflict detection (pure evaluation and day query)."""

from datetime import date, timedelta

import pytest

from dispatch.domain.conflicts import find_conflicts
from dispatch.domain.enums import BookingStatus
from dispatch.services.bookings import BookingService
from tests.conftest import make_booking

DAY = date(2026, 3, 10)


class TestFindConflicts:
    def test_no_claims_no_conflicts(self):
        result = find_conflicts([], "VH-001", ["EMP-001"])
        assert not result.has_conflicts
        assert result.vehicle is False
        assert result.employees == []

    def test_vehicle_conflict(self):
        claimed = [make_booking(vehicle_id="VH-001", crew=["EMP-009"])]
        result = find_conflicts(claimed, "VH-001", ["EMP-001"])
        assert result.vehicle is True
        assert result.employees == []
        assert result.has_conflicts

    def test_employee_intersection_without_duplicates(self):
        claimed = [
            make_booking(vehicle_id="VH-007", crew=["EMP-001", "EMP-003"]),
            make_booking(vehicle_id="VH-008", crew=["EMP-001", "EMP-002"]),
        ]
        result = find_conflicts(claimed, "VH-001", ["EMP-002", "EMP-001", "EMP-001", "EMP-004"])
        assert result.vehicle is False
        assert result.employees == ["EMP-002", "EMP-001"]

    def test_no_vehicle_requested(self):
        claimed = [make_booking(vehicle_id="VH-001")]
        assert find_conflicts(claimed, None, []).has_conflicts is False


async def _store(service: BookingService, booking, today: date):
    created, _ = await service.create(booking, today)
    return created


class TestCheckScheduleConflicts:
    @pytest.mark.asyncio
    async def test_only_active_bookings_on_that_day_count(self, db_session):
        service = BookingService(db_session)
        today = DAY - timedelta(days=30)

        same_day = await _store(service, make_booking(day=DAY, vehicle_id="VH-001", crew=["EMP-001"]), today)
        await _store(service, make_booking(day=DAY + timedelta(days=1), vehicle_id="VH-002", crew=["EMP-002"]), today)
        archived = await _store(service, make_booking(day=DAY, vehicle_id="VH-003", crew=["EMP-003"]), today)
        await service.archive(archived.id)
        done = await _store(service, make_booking(day=DAY, vehicle_id="VH-004", crew=["EMP-004"]), today)
        await service.update_status(done.id, BookingStatus.IN_TRANSIT, today=DAY)
        await service.update_status(done.id, BookingStatus.COMPLETED, today=DAY)

        result = await service.check_conflicts(
            "VH-001", ["EMP-001", "EMP-002", "EMP-003", "EMP-004"], DAY
        )
        assert result.vehicle is True
        assert result.employees == ["EMP-001"]

        for vehicle in ("VH-002", "VH-003", "VH-004"):
            assert (await service.check_conflicts(vehicle, [], DAY)).vehicle is False

        excluded = await service.check_conflicts(
            "VH-001", ["EMP-001"], DAY, exclude_id=same_day.id
        )
        assert not excluded.has_conflicts

    @pytest.mark.asyncio
    async def test_in_transit_booking_still_claims_resources(self, db_session):
        service = BookingService(db_session)
        booking = await _store(service, make_booking(day=DAY, vehicle_id="VH-001"), DAY)
        await service.update_status(booking.id, BookingStatus.IN_TRANSIT, today=DAY)

        assert (await service.check_conflicts("VH-001", [], DAY)).vehicle is True
