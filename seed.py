"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 sample vehicles (trucks and vans)
  - 8 sample employees (drivers and helpers)
  - 4 sample bookings (today, tomorrow, a multi-stop run, next week)

Bookings go through ``BookingService`` so they get real reservation ids and
trip numbers, and today's booking puts its vehicle and crew On Trip.
"""

import asyncio
from datetime import timedelta

from sqlalchemy import text

from dispatch.domain.entities import Booking, DeliveryStop
from dispatch.infrastructure.database import engine, session_scope
from dispatch.infrastructure.models import EmployeeModel, VehicleModel
from dispatch.services.bookings import BookingService
from dispatch.services.clock import local_today


VEHICLES = [
    {"vehicle_id": "VH-001", "vehicle_type": "10-Wheeler Truck", "plate_number": "NAB 1234"},
    {"vehicle_id": "VH-002", "vehicle_type": "6-Wheeler Truck", "plate_number": "NBC 5678"},
    {"vehicle_id": "VH-003", "vehicle_type": "4-Wheeler Van", "plate_number": "NCD 9012"},
    {"vehicle_id": "VH-004", "vehicle_type": "4-Wheeler Van", "plate_number": "NDE 3456"},
    {"vehicle_id": "VH-005", "vehicle_type": "Wing Van", "plate_number": "NEF 7890"},
    {"vehicle_id": "VH-006", "vehicle_type": "Closed Van", "plate_number": "NFG 2468"},
]

EMPLOYEES = [
    {"employee_id": "EMP-001", "full_name": "Juan Dela Cruz", "role": "Driver"},
    {"employee_id": "EMP-002", "full_name": "Maria Santos", "role": "Driver"},
    {"employee_id": "EMP-003", "full_name": "Jose Reyes", "role": "Driver"},
    {"employee_id": "EMP-004", "full_name": "Ana Garcia", "role": "Driver"},
    {"employee_id": "EMP-005", "full_name": "Pedro Mendoza", "role": "Helper"},
    {"employee_id": "EMP-006", "full_name": "Rosa Flores", "role": "Helper"},
    {"employee_id": "EMP-007", "full_name": "Carlos Ramos", "role": "Helper"},
    {"employee_id": "EMP-008", "full_name": "Liza Torres", "role": "Helper"},
]


def _stop(name: str, address: str, product: str, qty: float, weight: float) -> DeliveryStop:
    return DeliveryStop(
        destination_index=0,
        customer_establishment_name=name,
        destination_address=address,
        product_name=product,
        quantity=qty,
        gross_weight=weight,
        unit_per_package=12,
        number_of_packages=int(qty // 12) or 1,
    )


async def seed():
    async with session_scope() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM vehicles"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Vehicles ──────────────────────────────────────────────────
        session.add_all([VehicleModel(**v) for v in VEHICLES])
        await session.flush()
        print(f"  Created {len(VEHICLES)} vehicles")

        # ── Employees ─────────────────────────────────────────────────
        session.add_all([EmployeeModel(**e) for e in EMPLOYEES])
        await session.flush()
        print(f"  Created {len(EMPLOYEES)} employees")

        # ── Bookings ──────────────────────────────────────────────────
        today = local_today()
        service = BookingService(session)
        drafts = [
            Booking(
                company_name="Northwind Foods",
                origin_address="Warehouse 3, Port Area",
                destination_deliveries=[
                    _stop("Corner Mart", "12 Rizal Ave", "Canned Goods", 240, 380.0),
                ],
                vehicle_id="VH-001",
                vehicle_type="10-Wheeler Truck",
                plate_number="NAB 1234",
                date_needed=today,
                time_needed="08:00",
                employee_assigned=["EMP-001", "EMP-005"],
                delivery_fee=4500.0,
                total_distance=18.4,
            ),
            Booking(
                company_name="Acme Hardware",
                origin_address="Depot 1, Industrial Park",
                destination_deliveries=[
                    _stop("BuildRite", "88 Mabini St", "Cement Bags", 120, 6000.0),
                ],
                vehicle_id="VH-002",
                vehicle_type="6-Wheeler Truck",
                plate_number="NBC 5678",
                date_needed=today + timedelta(days=1),
                time_needed="09:30",
                employee_assigned=["EMP-002", "EMP-006"],
                delivery_fee=3800.0,
                total_distance=25.1,
            ),
            Booking(
                company_name="Fresh Greens Co.",
                origin_address="Cold Storage B, Market Rd",
                destination_deliveries=[
                    _stop("Green Basket", "3 Luna St", "Lettuce", 60, 90.0),
                    _stop("Daily Harvest", "41 Bonifacio Dr", "Tomatoes", 96, 150.0),
                    _stop("Market Stall 9", "Public Market", "Cabbage", 48, 110.0),
                ],
                vehicle_id="VH-003",
                vehicle_type="4-Wheeler Van",
                plate_number="NCD 9012",
                date_needed=today + timedelta(days=1),
                time_needed="05:00",
                employee_assigned=["EMP-003", "EMP-007"],
                delivery_fee=2900.0,
                total_distance=32.7,
            ),
            Booking(
                company_name="Blue Ocean Beverages",
                origin_address="Bottling Plant, Highway 5",
                destination_deliveries=[
                    _stop("Sunset Resort", "Beach Rd", "Bottled Water", 480, 520.0),
                ],
                vehicle_id="VH-005",
                vehicle_type="Wing Van",
                plate_number="NEF 7890",
                date_needed=today + timedelta(days=7),
                time_needed="13:00",
                employee_assigned=["EMP-004", "EMP-008"],
                delivery_fee=6100.0,
                total_distance=74.0,
            ),
        ]
        for draft in drafts:
            booking, _ = await service.create(draft, today)
            print(f"  Created booking {booking.reservation_id} / {booking.trip_number}")

        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
