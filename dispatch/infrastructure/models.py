"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``bookings``   -- trips; Delivery Stops, vehicle history, the vehicle
  change request and the last GPS fix are owned JSON documents
* ``counters``   -- one row per identifier sequence (``reservation``, ``trip``)
* ``vehicles``   -- fleet; only ``status`` is written by this service
* ``employees``  -- drivers and helpers; only ``status`` is written here

Indexes
-------
* **B-Tree** on ``(date_needed, status, is_archived)`` for the conflict
  check and the daily sweep.  The unique identifiers carry their own.

``bookings.version`` is the optimistic-concurrency counter: a write based
on a stale read fails instead of overwriting a concurrent change.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
)
from sqlalchemy.dialects.postgresql import JSONB

from .database import Base
from dispatch.domain.enums import BookingStatus, ResourceStatus, TripType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    # Persist the display values ("In Transit"), not the member names
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
    )


JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reservation_id = Column(String(32), unique=True, nullable=False)
    trip_number = Column(String(32), unique=True, nullable=False)

    company_name = Column(String(255), nullable=False)
    origin_address = Column(String(500), nullable=False)
    origin_picked_up = Column(Boolean, default=False, nullable=False)
    origin_pickup_at = Column(DateTime(timezone=True), nullable=True)
    origin_pickup_proof = Column(String, nullable=True)
    trip_type = Column(_enum(TripType, "triptype"), default=TripType.SINGLE)
    number_of_stops = Column(Integer, default=1, nullable=False)
    destination_deliveries = Column(JSONDocument, nullable=False, default=list)
    active_destination_index = Column(Integer, nullable=True)

    vehicle_id = Column(String(64), nullable=False)
    vehicle_type = Column(String(64), nullable=False)
    plate_number = Column(String(32), nullable=False)
    vehicle_history = Column(JSONDocument, nullable=False, default=list)
    vehicle_change_request = Column(JSONDocument, nullable=True)

    date_needed = Column(Date, nullable=False)
    time_needed = Column(String(16), nullable=False)
    employee_assigned = Column(JSONDocument, nullable=False, default=list)
    role_of_employee = Column(JSONDocument, nullable=False, default=list)

    status = Column(
        _enum(BookingStatus, "bookingstatus"),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    is_archived = Column(Boolean, default=False, nullable=False)
    proof_of_delivery = Column(String, nullable=True)
    driver_location = Column(JSONDocument, nullable=True)

    delivery_fee = Column(Float, default=0.0, nullable=False)
    total_distance = Column(Float, default=0.0, nullable=False)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_bookings_schedule", "date_needed", "status", "is_archived"),
    )


class CounterModel(Base):
    __tablename__ = "counters"

    name = Column(String(32), primary_key=True)
    seq = Column(Integer, nullable=False, default=0)


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(String(64), unique=True, nullable=False)
    vehicle_type = Column(String(64), nullable=False)
    plate_number = Column(String(32), nullable=False)
    status = Column(
        _enum(ResourceStatus, "resourcestatus"),
        default=ResourceStatus.AVAILABLE,
        nullable=False,
    )

    __table_args__ = (Index("idx_vehicles_status", "status"),)


class EmployeeModel(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(String(64), unique=True, nullable=False)
    full_name = Column(String(120), nullable=False)
    role = Column(String(32), nullable=False, default="Driver")
    status = Column(
        _enum(ResourceStatus, "resourcestatus"),
        default=ResourceStatus.AVAILABLE,
        nullable=False,
    )

    __table_args__ = (Index("idx_employees_status", "status"),)
