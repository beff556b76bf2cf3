"""Unit tests for booking status transitions (State Pattern)."""

from datetime import date, timedelta

import pytest

from dispatch.domain import lifecycle
from dispatch.domain.enums import BookingStatus, DeliveryStatus, ResourceStatus
from dispatch.domain.errors import BookingLocked, InvalidStateTransition
from tests.conftest import make_booking

DAY = date(2026, 3, 10)


class TestBookingStateMachine:
    def test_initial_status_is_pending(self):
        assert make_booking().status == BookingStatus.PENDING

    # ── Valid transitions ─────────────────────────────────────────

    def test_pending_to_ready_to_go_on_the_day(self):
        booking = make_booking(day=DAY)
        booking.transition_to(BookingStatus.READY_TO_GO, today=DAY)
        assert booking.status == BookingStatus.READY_TO_GO

    def test_pending_to_in_transit(self):
        booking = make_booking(day=DAY + timedelta(days=3))
        booking.transition_to(BookingStatus.IN_TRANSIT, today=DAY)
        assert booking.status == BookingStatus.IN_TRANSIT

    def test_ready_to_go_to_in_transit(self):
        booking = make_booking(status=BookingStatus.READY_TO_GO)
        booking.transition_to(BookingStatus.IN_TRANSIT, today=DAY)
        assert booking.status == BookingStatus.IN_TRANSIT

    def test_delivered_to_completed_stores_final_proof(self):
        booking = make_booking(stops=2, status=BookingStatus.IN_TRANSIT)
        booking.mark_stop_delivered(0, by="EMP-001")
        booking.mark_stop_delivered(1, by="EMP-001")
        booking.transition_to(BookingStatus.COMPLETED, today=DAY, proof="data:image/png;base64,AAAA")
        assert booking.status == BookingStatus.COMPLETED
        assert booking.proof_of_delivery == "data:image/png;base64,AAAA"

    # ── Invalid transitions ───────────────────────────────────────

    def test_ready_to_go_before_the_day_fails(self):
        booking = make_booking(day=DAY + timedelta(days=1))
        with pytest.raises(InvalidStateTransition, match="cannot be confirmed yet"):
            booking.transition_to(BookingStatus.READY_TO_GO, today=DAY)
        assert booking.status == BookingStatus.PENDING

    def test_pending_to_delivered_fails(self):
        booking = make_booking()
        with pytest.raises(InvalidStateTransition):
            booking.transition_to(BookingStatus.DELIVERED, today=DAY)

    def test_ready_to_go_back_to_pending_fails(self):
        booking = make_booking(status=BookingStatus.READY_TO_GO)
        with pytest.raises(InvalidStateTransition):
            booking.transition_to(BookingStatus.PENDING, today=DAY)

    def test_completed_to_anything_fails(self):
        booking = make_booking(status=BookingStatus.COMPLETED)
        for target in BookingStatus:
            with pytest.raises(InvalidStateTransition):
                booking.transition_to(target, today=DAY)

    def test_in_transit_to_same_status_fails(self):
        booking = make_booking(status=BookingStatus.IN_TRANSIT)
        with pytest.raises(InvalidStateTransition):
            booking.transition_to(BookingStatus.IN_TRANSIT, today=DAY)


class TestCompletionGate:
    def test_multi_stop_cannot_skip_delivered(self):
        booking = make_booking(stops=2, status=BookingStatus.IN_TRANSIT)
        booking.destination_deliveries[0].status = DeliveryStatus.DELIVERED
        booking.destination_deliveries[1].status = DeliveryStatus.DELIVERED
        with pytest.raises(InvalidStateTransition, match="must be Delivered"):
            booking.transition_to(BookingStatus.COMPLETED, today=DAY)

    def test_multi_stop_delivered_requires_every_stop(self):
        booking = make_booking(stops=3, status=BookingStatus.IN_TRANSIT)
        booking.mark_stop_delivered(0, by="EMP-001")
        with pytest.raises(InvalidStateTransition, match="2 of 3 destinations"):
            booking.transition_to(BookingStatus.DELIVERED, today=DAY)
        assert booking.status == BookingStatus.IN_TRANSIT

    def test_single_stop_completed_directly_marks_lone_stop(self):
        booking = make_booking(stops=1, status=BookingStatus.IN_TRANSIT)
        booking.transition_to(
            BookingStatus.COMPLETED, today=DAY, actor="EMP-001", proof="proof"
        )
        stop = booking.destination_deliveries[0]
        assert booking.status == BookingStatus.COMPLETED
        assert stop.status == DeliveryStatus.DELIVERED
        assert stop.delivered_by == "EMP-001"
        assert stop.proof_of_delivery == "proof"

    def test_single_stop_delivered_then_completed(self):
        booking = make_booking(stops=1, status=BookingStatus.IN_TRANSIT)
        booking.transition_to(BookingStatus.DELIVERED, today=DAY, actor="EMP-001")
        delivered_at = booking.destination_deliveries[0].delivered_at
        booking.transition_to(BookingStatus.COMPLETED, today=DAY, actor="EMP-001")
        assert booking.status == BookingStatus.COMPLETED
        assert booking.destination_deliveries[0].delivered_at == delivered_at


class TestEditGuards:
    @pytest.mark.parametrize(
        "status", [BookingStatus.READY_TO_GO, BookingStatus.IN_TRANSIT]
    )
    def test_dispatched_booking_is_locked(self, status):
        booking = make_booking(status=status)
        with pytest.raises(BookingLocked):
            booking.ensure_editable()
        with pytest.raises(BookingLocked):
            booking.archive()
        assert booking.is_archived is False

    @pytest.mark.parametrize(
        "status",
        [BookingStatus.PENDING, BookingStatus.DELIVERED, BookingStatus.COMPLETED],
    )
    def test_other_statuses_are_editable_and_archivable(self, status):
        booking = make_booking(status=status)
        booking.ensure_editable()
        booking.archive()
        assert booking.is_archived is True
        booking.restore()
        assert booking.is_archived is False

    def test_locked_is_a_transition_error(self):
        assert issubclass(BookingLocked, InvalidStateTransition)


class TestLifecyclePolicy:
    def test_due_today_and_past(self):
        assert lifecycle.is_due(make_booking(day=DAY), DAY)
        assert lifecycle.is_due(make_booking(day=DAY - timedelta(days=2)), DAY)
        assert not lifecycle.is_due(make_booking(day=DAY + timedelta(days=1)), DAY)

    @pytest.mark.parametrize(
        ("target", "expected"),
        [
            (BookingStatus.PENDING, None),
            (BookingStatus.READY_TO_GO, ResourceStatus.ON_TRIP),
            (BookingStatus.IN_TRANSIT, ResourceStatus.ON_TRIP),
            (BookingStatus.DELIVERED, ResourceStatus.AVAILABLE),
            (BookingStatus.COMPLETED, ResourceStatus.AVAILABLE),
        ],
    )
    def test_resource_status_after(self, target, expected):
        assert lifecycle.resource_status_after(target) == expected
