"""Unit tests for the multi-stop delivery sequence on ``Booking``."""

from datetime import datetime, timezone

import pytest

from dispatch.domain.enums import BookingStatus, DeliveryStatus, TripType
from dispatch.domain.errors import (
    DeliveryStopNotFound,
    InvalidStateTransition,
    StopAlreadyDelivered,
)
from tests.conftest import make_booking, make_stop

T0 = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)
T1 = datetime(2026, 3, 10, 11, 30, tzinfo=timezone.utc)


class TestMarkStopDelivered:
    def test_first_of_two_keeps_in_transit(self):
        booking = make_booking(stops=2, status=BookingStatus.IN_TRANSIT)
        promoted = booking.mark_stop_delivered(0, by="EMP-001", now=T0)

        assert promoted is False
        assert booking.status == BookingStatus.IN_TRANSIT
        assert booking.destination_deliveries[0].status == DeliveryStatus.DELIVERED
        assert booking.destination_deliveries[1].status == DeliveryStatus.PENDING

    def test_last_of_two_promotes_to_delivered(self):
        booking = make_booking(stops=2, status=BookingStatus.IN_TRANSIT)
        booking.mark_stop_delivered(0, by="EMP-001", now=T0)
        promoted = booking.mark_stop_delivered(1, by="EMP-001", now=T1)

        assert promoted is True
        assert booking.status == BookingStatus.DELIVERED
        assert booking.all_delivered

    def test_redelivery_is_rejected_and_stop_unchanged(self):
        booking = make_booking(stops=2, status=BookingStatus.IN_TRANSIT)
        booking.mark_stop_delivered(0, by="EMP-001", proof="first", now=T0)
        booking.mark_stop_delivered(1, by="EMP-001", now=T0)

        with pytest.raises(StopAlreadyDelivered):
            booking.mark_stop_delivered(0, by="EMP-002", proof="second", now=T1)

        stop = booking.destination_deliveries[0]
        assert stop.status == DeliveryStatus.DELIVERED
        assert stop.delivered_at == T0
        assert stop.delivered_by == "EMP-001"
        assert stop.proof_of_delivery == "first"

    def test_records_who_when_and_notes(self):
        booking = make_booking(stops=2, status=BookingStatus.IN_TRANSIT)
        booking.mark_stop_delivered(
            1, by="EMP-001", proof="img", notes="Left at gate", now=T0
        )
        stop = booking.stop(1)
        assert stop.delivered_at == T0
        assert stop.delivered_by == "EMP-001"
        assert stop.notes == "Left at gate"

    def test_any_pending_stop_may_be_delivered_first(self):
        booking = make_booking(stops=3, status=BookingStatus.IN_TRANSIT)
        booking.set_active_destination(0)
        booking.mark_stop_delivered(2, by="EMP-001")
        assert booking.stop(2).is_delivered
        assert booking.active_destination_index == 0

    def test_single_stop_is_not_auto_promoted(self):
        booking = make_booking(stops=1, status=BookingStatus.IN_TRANSIT)
        assert booking.mark_stop_delivered(0, by="EMP-001") is False
        assert booking.status == BookingStatus.IN_TRANSIT

    def test_unknown_index_is_not_found(self):
        booking = make_booking(stops=2, status=BookingStatus.IN_TRANSIT)
        with pytest.raises(DeliveryStopNotFound):
            booking.mark_stop_delivered(5, by="EMP-001")

    @pytest.mark.parametrize(
        "status", [BookingStatus.PENDING, BookingStatus.READY_TO_GO]
    )
    def test_requires_trip_in_transit(self, status):
        booking = make_booking(stops=2, status=status)
        with pytest.raises(InvalidStateTransition, match="only be delivered while In Transit"):
            booking.mark_stop_delivered(0, by="EMP-001")
        assert not booking.stop(0).is_delivered

    def test_already_delivered_maps_to_not_found_family(self):
        assert issubclass(StopAlreadyDelivered, DeliveryStopNotFound)


class TestActiveDestination:
    def test_default_is_lowest_pending_index(self):
        booking = make_booking(stops=3, status=BookingStatus.IN_TRANSIT)
        assert booking.next_destination().destination_index == 0
        booking.mark_stop_delivered(0, by="EMP-001")
        assert booking.next_destination().destination_index == 1

    def test_driver_choice_wins_while_pending(self):
        booking = make_booking(stops=3, status=BookingStatus.IN_TRANSIT)
        booking.set_active_destination(2)
        assert booking.next_destination().destination_index == 2

    def test_choice_cleared_once_delivered(self):
        booking = make_booking(stops=3, status=BookingStatus.IN_TRANSIT)
        booking.set_active_destination(2)
        booking.mark_stop_delivered(2, by="EMP-001")
        assert booking.active_destination_index is None
        assert booking.next_destination().destination_index == 0

    def test_cannot_choose_delivered_stop(self):
        booking = make_booking(stops=2, status=BookingStatus.IN_TRANSIT)
        booking.mark_stop_delivered(0, by="EMP-001")
        with pytest.raises(StopAlreadyDelivered):
            booking.set_active_destination(0)

    def test_no_next_destination_when_all_delivered(self):
        booking = make_booking(stops=2, status=BookingStatus.IN_TRANSIT)
        booking.mark_stop_delivered(0, by="EMP-001")
        booking.mark_stop_delivered(1, by="EMP-001")
        assert booking.next_destination() is None
        assert booking.delivery_progress() == {"total": 2, "delivered": 2, "pending": 0}


class TestOriginPickup:
    def test_pickup_recorded_once(self):
        booking = make_booking(stops=2, status=BookingStatus.IN_TRANSIT)
        booking.confirm_origin_pickup("dock-photo", now=T0)

        assert booking.origin_picked_up is True
        assert booking.origin_pickup_at == T0
        assert booking.origin_pickup_proof == "dock-photo"

        with pytest.raises(InvalidStateTransition):
            booking.confirm_origin_pickup("again", now=T1)
        assert booking.origin_pickup_at == T0
        assert booking.origin_pickup_proof == "dock-photo"

    @pytest.mark.parametrize(
        "status", [BookingStatus.PENDING, BookingStatus.READY_TO_GO, BookingStatus.DELIVERED]
    )
    def test_requires_trip_in_transit(self, status):
        booking = make_booking(status=status)
        with pytest.raises(InvalidStateTransition):
            booking.confirm_origin_pickup(now=T0)
        assert booking.origin_picked_up is False

    def test_stops_can_be_delivered_without_pickup(self):
        booking = make_booking(stops=2, status=BookingStatus.IN_TRANSIT)
        booking.mark_stop_delivered(0, by="EMP-001", now=T0)
        assert booking.origin_picked_up is False


class TestDestinationList:
    def test_trip_type_follows_stop_count(self):
        assert make_booking(stops=1).trip_type == TripType.SINGLE
        assert make_booking(stops=2).trip_type == TripType.MULTIPLE
        assert make_booking(stops=4).number_of_stops == 4

    def test_replacement_is_renumbered_by_position(self):
        booking = make_booking(stops=2)
        booking.set_destinations([make_stop(7, "A"), make_stop(3, "B"), make_stop(9, "C")])
        assert [d.destination_index for d in booking.destination_deliveries] == [0, 1, 2]
        assert booking.stop(1).customer_establishment_name == "B"

    def test_replacement_rejected_after_a_delivery(self):
        booking = make_booking(stops=2, status=BookingStatus.IN_TRANSIT)
        booking.mark_stop_delivered(0, by="EMP-001")
        with pytest.raises(InvalidStateTransition):
            booking.set_destinations([make_stop(0)])
        assert booking.number_of_stops == 2
