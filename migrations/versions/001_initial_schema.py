"""Initial schema: bookings, identifier counters, vehicles and employees.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── counters ──────────────────────────────────────────────────────
    op.create_table(
        "counters",
        sa.Column("name", sa.String(32), primary_key=True),
        sa.Column("seq", sa.Integer, nullable=False, server_default="0"),
    )

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("vehicle_id", sa.String(64), unique=True, nullable=False),
        sa.Column("vehicle_type", sa.String(64), nullable=False),
        sa.Column("plate_number", sa.String(32), nullable=False),
        sa.Column(
            "status", sa.String(16), nullable=False, server_default="Available"
        ),
    )
    op.create_index("idx_vehicles_status", "vehicles", ["status"])

    # ── employees ─────────────────────────────────────────────────────
    op.create_table(
        "employees",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("employee_id", sa.String(64), unique=True, nullable=False),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="Driver"),
        sa.Column(
            "status", sa.String(16), nullable=False, server_default="Available"
        ),
    )
    op.create_index("idx_employees_status", "employees", ["status"])

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("reservation_id", sa.String(32), unique=True, nullable=False),
        sa.Column("trip_number", sa.String(32), unique=True, nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("origin_address", sa.String(500), nullable=False),
        sa.Column(
            "origin_picked_up", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("origin_pickup_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("origin_pickup_proof", sa.Text, nullable=True),
        sa.Column("trip_type", sa.String(8), server_default="single"),
        sa.Column("number_of_stops", sa.Integer, nullable=False, server_default="1"),
        sa.Column("destination_deliveries", JSONB, nullable=False),
        sa.Column("active_destination_index", sa.Integer, nullable=True),
        sa.Column("vehicle_id", sa.String(64), nullable=False),
        sa.Column("vehicle_type", sa.String(64), nullable=False),
        sa.Column("plate_number", sa.String(32), nullable=False),
        sa.Column("vehicle_history", JSONB, nullable=False),
        sa.Column("vehicle_change_request", JSONB, nullable=True),
        sa.Column("date_needed", sa.Date, nullable=False),
        sa.Column("time_needed", sa.String(16), nullable=False),
        sa.Column("employee_assigned", JSONB, nullable=False),
        sa.Column("role_of_employee", JSONB, nullable=False),
        sa.Column(
            "status", sa.String(16), nullable=False, server_default="Pending"
        ),
        sa.Column(
            "is_archived", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("proof_of_delivery", sa.Text, nullable=True),
        sa.Column("driver_location", JSONB, nullable=True),
        sa.Column("delivery_fee", sa.Float, nullable=False, server_default="0"),
        sa.Column("total_distance", sa.Float, nullable=False, server_default="0"),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_bookings_schedule",
        "bookings",
        ["date_needed", "status", "is_archived"],
    )


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("employees")
    op.drop_table("vehicles")
    op.drop_table("counters")
