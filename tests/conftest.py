"""
Shared test fixtures.

Each test gets its own SQLite file database (via aiosqlite) built from the
production metadata, so tests run without Docker / PostgreSQL / Redis.  A
file rather than ``:memory:`` lets several sessions work on the same data
at once (sequence races, stale writes).
"""

from datetime import date
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from dispatch.api.middleware import limiter
from dispatch.domain.entities import Booking, DeliveryStop
from dispatch.domain.enums import BookingStatus, ResourceStatus
from dispatch.infrastructure.database import Base, session_scope
from dispatch.infrastructure.models import EmployeeModel, VehicleModel

limiter.enabled = False


# ── Builders ──────────────────────────────────────────────────────────


def make_stop(index: int = 0, name: Optional[str] = None) -> DeliveryStop:
    return DeliveryStop(
        destination_index=index,
        customer_establishment_name=name or f"Store {index}",
        destination_address=f"{index + 1} Main St",
        product_name="Rice",
        quantity=50,
        gross_weight=1250.0,
        unit_per_package=1,
        number_of_packages=50,
    )


def make_booking(
    stops: int = 1,
    *,
    status: BookingStatus = BookingStatus.PENDING,
    day: Optional[date] = None,
    vehicle_id: str = "VH-001",
    crew: Optional[list[str]] = None,
    reservation_id: str = "RES000001",
) -> Booking:
    return Booking(
        id=1,
        reservation_id=reservation_id,
        trip_number="TRP000001",
        company_name="Northwind Foods",
        origin_address="Warehouse 3",
        destination_deliveries=[make_stop(i) for i in range(stops)],
        vehicle_id=vehicle_id,
        vehicle_type="Truck",
        plate_number="NAB 1234",
        date_needed=day or date(2026, 3, 10),
        time_needed="08:00",
        employee_assigned=["EMP-001", "EMP-005"] if crew is None else crew,
        role_of_employee=["Driver", "Helper"],
        status=status,
    )


def stop_payload(index: int = 0) -> dict:
    return {
        "customerEstablishmentName": f"Store {index}",
        "destinationAddress": f"{index + 1} Main St",
        "productName": "Rice",
        "quantity": 50,
        "grossWeight": 1250.0,
        "unitPerPackage": 1,
        "numberOfPackages": 50,
    }


def booking_payload(
    day: date,
    stops: int = 1,
    vehicle_id: str = "VH-001",
    crew: Optional[list[str]] = None,
) -> dict:
    return {
        "companyName": "Northwind Foods",
        "originAddress": "Warehouse 3",
        "destinationDeliveries": [stop_payload(i) for i in range(stops)],
        "vehicleId": vehicle_id,
        "vehicleType": "Truck",
        "plateNumber": "NAB 1234",
        "dateNeeded": day.isoformat(),
        "timeNeeded": "08:00",
        "employeeAssigned": ["EMP-001", "EMP-005"] if crew is None else crew,
    }


async def vehicle_status(session: AsyncSession, vehicle_id: str) -> ResourceStatus:
    result = await session.execute(
        select(VehicleModel.status).where(VehicleModel.vehicle_id == vehicle_id)
    )
    return result.scalar_one()


async def employee_status(session: AsyncSession, employee_id: str) -> ResourceStatus:
    result = await session.execute(
        select(EmployeeModel.status).where(EmployeeModel.employee_id == employee_id)
    )
    return result.scalar_one()


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Create tables in a fresh database file, then dispose."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'dispatch.db'}", poolclass=NullPool
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def fleet(session_factory):
    """Two vehicles and four employees, all Available."""
    async with session_factory() as session:
        session.add_all(
            [
                VehicleModel(vehicle_id="VH-001", vehicle_type="Truck", plate_number="NAB 1234"),
                VehicleModel(vehicle_id="VH-002", vehicle_type="Van", plate_number="NBC 5678"),
                EmployeeModel(employee_id="EMP-001", full_name="Juan Dela Cruz", role="Driver"),
                EmployeeModel(employee_id="EMP-002", full_name="Maria Santos", role="Driver"),
                EmployeeModel(employee_id="EMP-005", full_name="Pedro Mendoza", role="Helper"),
                EmployeeModel(employee_id="EMP-006", full_name="Rosa Flores", role="Helper"),
            ]
        )
        await session.commit()


@pytest_asyncio.fixture
async def db_session(session_factory, fleet) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory, fleet) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient over the real app, with the DB session pointed at SQLite."""

    async def _test_db():
        async with session_scope(session_factory) as session:
            yield session

    with (
        patch("dispatch.workers.scheduler.start_scheduler", new_callable=AsyncMock),
        patch("dispatch.workers.scheduler.stop_scheduler", new_callable=AsyncMock),
    ):
        from dispatch.api.app import create_app
        from dispatch.api.dependencies import get_db

        app = create_app()
        app.dependency_overrides[get_db] = _test_db

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
