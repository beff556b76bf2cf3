"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  ``BookingRepository`` also maps between the
``bookings`` row (with its JSON sub-documents) and the ``Booking`` entity.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from .models import BookingModel, EmployeeModel, VehicleModel
from dispatch.domain.entities import (
    Booking,
    DeliveryStop,
    GeoFix,
    VehicleAssignment,
    VehicleChangeRequest,
)
from dispatch.domain.enums import (
    ACTIVE_STATUSES,
    AssignmentStatus,
    BookingStatus,
    ChangeRequestStatus,
    DeliveryStatus,
    ResourceStatus,
)
from dispatch.domain.errors import BookingNotFound


# ── JSON document mapping ─────────────────────────────────────────────


def _dt_out(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _dt_in(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _stop_to_doc(stop: DeliveryStop) -> dict[str, Any]:
    return {
        "destination_index": stop.destination_index,
        "customer_establishment_name": stop.customer_establishment_name,
        "destination_address": stop.destination_address,
        "product_name": stop.product_name,
        "quantity": stop.quantity,
        "gross_weight": stop.gross_weight,
        "unit_per_package": stop.unit_per_package,
        "number_of_packages": stop.number_of_packages,
        "status": stop.status.value,
        "delivered_at": _dt_out(stop.delivered_at),
        "delivered_by": stop.delivered_by,
        "proof_of_delivery": stop.proof_of_delivery,
        "notes": stop.notes,
    }


def _stop_from_doc(doc: dict[str, Any]) -> DeliveryStop:
    return DeliveryStop(
        destination_index=doc["destination_index"],
        customer_establishment_name=doc["customer_establishment_name"],
        destination_address=doc["destination_address"],
        product_name=doc["product_name"],
        quantity=doc["quantity"],
        gross_weight=doc["gross_weight"],
        unit_per_package=doc["unit_per_package"],
        number_of_packages=doc["number_of_packages"],
        status=DeliveryStatus(doc.get("status", DeliveryStatus.PENDING.value)),
        delivered_at=_dt_in(doc.get("delivered_at")),
        delivered_by=doc.get("delivered_by"),
        proof_of_delivery=doc.get("proof_of_delivery"),
        notes=doc.get("notes"),
    )


def _assignment_to_doc(record: VehicleAssignment) -> dict[str, Any]:
    return {
        "vehicle_id": record.vehicle_id,
        "vehicle_type": record.vehicle_type,
        "plate_number": record.plate_number,
        "started_at": _dt_out(record.started_at),
        "ended_at": _dt_out(record.ended_at),
        "reason": record.reason,
        "status": record.status.value,
    }


def _assignment_from_doc(doc: dict[str, Any]) -> VehicleAssignment:
    return VehicleAssignment(
        vehicle_id=doc["vehicle_id"],
        vehicle_type=doc["vehicle_type"],
        plate_number=doc["plate_number"],
        started_at=_dt_in(doc["started_at"]),
        ended_at=_dt_in(doc.get("ended_at")),
        reason=doc.get("reason"),
        status=AssignmentStatus(doc.get("status", AssignmentStatus.ACTIVE.value)),
    )


def _change_request_to_doc(req: Optional[VehicleChangeRequest]):
    if req is None:
        return None
    return {
        "requested": req.requested,
        "requested_at": _dt_out(req.requested_at),
        "reason": req.reason,
        "status": req.status.value,
        "approved_at": _dt_out(req.approved_at),
    }


def _change_request_from_doc(doc) -> Optional[VehicleChangeRequest]:
    if not doc:
        return None
    return VehicleChangeRequest(
        requested=doc.get("requested", False),
        requested_at=_dt_in(doc.get("requested_at")),
        reason=doc.get("reason"),
        status=ChangeRequestStatus(doc.get("status", "pending")),
        approved_at=_dt_in(doc.get("approved_at")),
    )


def _location_to_doc(fix: Optional[GeoFix]):
    if fix is None:
        return None
    return {
        "latitude": fix.latitude,
        "longitude": fix.longitude,
        "accuracy": fix.accuracy,
        "last_updated": _dt_out(fix.last_updated),
    }


def _location_from_doc(doc) -> Optional[GeoFix]:
    if not doc:
        return None
    return GeoFix(
        latitude=doc["latitude"],
        longitude=doc["longitude"],
        accuracy=doc.get("accuracy"),
        last_updated=_dt_in(doc.get("last_updated")),
    )


def _to_entity(model: BookingModel) -> Booking:
    return Booking(
        id=model.id,
        reservation_id=model.reservation_id,
        trip_number=model.trip_number,
        company_name=model.company_name,
        origin_address=model.origin_address,
        origin_picked_up=model.origin_picked_up,
        origin_pickup_at=model.origin_pickup_at,
        origin_pickup_proof=model.origin_pickup_proof,
        destination_deliveries=[
            _stop_from_doc(d) for d in model.destination_deliveries or []
        ],
        vehicle_id=model.vehicle_id,
        vehicle_type=model.vehicle_type,
        plate_number=model.plate_number,
        vehicle_history=[
            _assignment_from_doc(r) for r in model.vehicle_history or []
        ],
        vehicle_change_request=_change_request_from_doc(
            model.vehicle_change_request
        ),
        date_needed=model.date_needed,
        time_needed=model.time_needed,
        employee_assigned=list(model.employee_assigned or []),
        role_of_employee=list(model.role_of_employee or []),
        status=BookingStatus(model.status),
        is_archived=model.is_archived,
        active_destination_index=model.active_destination_index,
        proof_of_delivery=model.proof_of_delivery,
        driver_location=_location_from_doc(model.driver_location),
        delivery_fee=model.delivery_fee,
        total_distance=model.total_distance,
        version=model.version,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _apply(model: BookingModel, booking: Booking) -> None:
    """Write every mutable field of *booking* onto *model*."""
    model.company_name = booking.company_name
    model.origin_address = booking.origin_address
    model.origin_picked_up = booking.origin_picked_up
    model.origin_pickup_at = booking.origin_pickup_at
    model.origin_pickup_proof = booking.origin_pickup_proof
    model.trip_type = booking.trip_type
    model.number_of_stops = booking.number_of_stops
    model.destination_deliveries = [
        _stop_to_doc(d) for d in booking.destination_deliveries
    ]
    model.active_destination_index = booking.active_destination_index
    model.vehicle_id = booking.vehicle_id
    model.vehicle_type = booking.vehicle_type
    model.plate_number = booking.plate_number
    model.vehicle_history = [
        _assignment_to_doc(r) for r in booking.vehicle_history
    ]
    model.vehicle_change_request = _change_request_to_doc(
        booking.vehicle_change_request
    )
    model.date_needed = booking.date_needed
    model.time_needed = booking.time_needed
    model.employee_assigned = list(booking.employee_assigned)
    model.role_of_employee = list(booking.role_of_employee)
    model.status = booking.status
    model.is_archived = booking.is_archived
    model.proof_of_delivery = booking.proof_of_delivery
    model.driver_location = _location_to_doc(booking.driver_location)
    model.delivery_fee = booking.delivery_fee
    model.total_distance = booking.total_distance


# ── Repositories ──────────────────────────────────────────────────────


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, booking: Booking) -> Booking:
        model = BookingModel(
            reservation_id=booking.reservation_id,
            trip_number=booking.trip_number,
        )
        _apply(model, booking)
        self.session.add(model)
        await self.session.flush()
        return _to_entity(model)

    async def save(self, booking: Booking) -> Booking:
        """
        Persist *booking* as a whole.  Raises ``StaleDataError`` on a lost race.

        The row may be reloaded here, so the version the entity was read at
        is compared first; the flush then re-checks it in the UPDATE itself.
        """
        model = await self.session.get(BookingModel, booking.id)
        if model is None:
            raise BookingNotFound(f"Booking {booking.id} not found")
        if booking.version is not None and model.version != booking.version:
            raise StaleDataError(
                f"Booking {booking.id} was read at version {booking.version} "
                f"but is now at version {model.version}"
            )
        _apply(model, booking)
        await self.session.flush()
        return _to_entity(model)

    async def get_by_id(self, booking_id: int) -> Optional[Booking]:
        model = await self.session.get(BookingModel, booking_id)
        return _to_entity(model) if model else None

    async def get_by_reservation_id(self, reservation_id: str) -> Optional[Booking]:
        result = await self.session.execute(
            select(BookingModel).where(BookingModel.reservation_id == reservation_id)
        )
        model = result.scalar_one_or_none()
        return _to_entity(model) if model else None

    async def get_by_trip_number(self, trip_number: str) -> Optional[Booking]:
        result = await self.session.execute(
            select(BookingModel).where(BookingModel.trip_number == trip_number)
        )
        model = result.scalar_one_or_none()
        return _to_entity(model) if model else None

    async def list_all(
        self,
        *,
        include_archived: bool = False,
        status: Optional[BookingStatus] = None,
    ) -> list[Booking]:
        query = select(BookingModel).order_by(BookingModel.date_needed, BookingModel.id)
        if not include_archived:
            query = query.where(BookingModel.is_archived.is_(False))
        if status is not None:
            query = query.where(BookingModel.status == status)
        result = await self.session.execute(query)
        return [_to_entity(m) for m in result.scalars().all()]

    async def list_for_employee(self, employee_id: str) -> list[Booking]:
        # Crew lists are JSON; membership is checked in Python for portability
        bookings = await self.list_all()
        return [b for b in bookings if employee_id in b.employee_assigned]

    async def list_claimed_on_day(
        self, day: date, exclude_id: Optional[int] = None
    ) -> list[Booking]:
        """Non-archived bookings holding resources on *day*."""
        query = select(BookingModel).where(
            BookingModel.date_needed == day,
            BookingModel.status.in_(ACTIVE_STATUSES),
            BookingModel.is_archived.is_(False),
        )
        if exclude_id is not None:
            query = query.where(BookingModel.id != exclude_id)
        result = await self.session.execute(query)
        return [_to_entity(m) for m in result.scalars().all()]

    async def list_due_pending(self, today: date) -> list[Booking]:
        result = await self.session.execute(
            select(BookingModel)
            .where(
                BookingModel.date_needed <= today,
                BookingModel.status == BookingStatus.PENDING,
                BookingModel.is_archived.is_(False),
            )
            .order_by(BookingModel.date_needed, BookingModel.id)
        )
        return [_to_entity(m) for m in result.scalars().all()]

    async def delete(self, booking_id: int) -> bool:
        result = await self.session.execute(
            delete(BookingModel).where(BookingModel.id == booking_id)
        )
        return result.rowcount > 0


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def set_status(self, vehicle_id: str, status: ResourceStatus) -> bool:
        """Returns False when no vehicle has *vehicle_id*."""
        result = await self.session.execute(
            update(VehicleModel)
            .where(VehicleModel.vehicle_id == vehicle_id)
            .values(status=status)
        )
        return result.rowcount > 0


class EmployeeRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def set_status_many(
        self, employee_ids: Iterable[str], status: ResourceStatus
    ) -> int:
        """Bulk update; ids with no matching employee are skipped."""
        result = await self.session.execute(
            update(EmployeeModel)
            .where(EmployeeModel.employee_id.in_(list(employee_ids)))
            .values(status=status)
        )
        return result.rowcount
