"""Initial schema: users, room inventory, bookings, booking rooms, payments.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True) -> list:
    columns = [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]
    if updated:
        columns.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())
        )
    return columns


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'guest'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("role IN ('admin', 'manager', 'receptionist', 'guest')", name="check_user_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "room_categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("max_occupancy", sa.Integer(), nullable=False),
        sa.Column("amenities", sa.JSON(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("base_price >= 0", name="check_category_base_price_non_negative"),
        sa.CheckConstraint("max_occupancy > 0", name="check_category_max_occupancy_positive"),
    )
    op.create_index("ix_room_categories_id", "room_categories", ["id"])

    op.create_table(
        "rooms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("room_number", sa.String(10), nullable=False, unique=True),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("room_categories.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'available'")),
        sa.Column("floor", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('available', 'booked', 'cleaning', 'out_of_service')", name="check_room_status"
        ),
        sa.CheckConstraint("floor >= 1", name="check_room_floor_positive"),
    )
    op.create_index("ix_rooms_id", "rooms", ["id"])
    op.create_index("ix_rooms_category_id", "rooms", ["category_id"])
    op.create_index("ix_rooms_status", "rooms", ["status"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("check_in_date", sa.Date(), nullable=False),
        sa.Column("check_out_date", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending_payment'")),
        sa.Column("guest_count", sa.Integer(), nullable=False),
        sa.Column("special_requests", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("check_out_date > check_in_date", name="check_booking_date_order"),
        sa.CheckConstraint("guest_count > 0", name="check_booking_guest_count_positive"),
        sa.CheckConstraint(
            "status IN ('pending_payment', 'confirmed', 'checked_in', 'checked_out', 'cancelled')",
            name="check_booking_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    # Every availability check filters on both ends of the stay
    op.create_index("ix_bookings_dates", "bookings", ["check_in_date", "check_out_date"])
    op.create_index("ix_bookings_created_at", "bookings", ["created_at"])

    op.create_table(
        "booking_rooms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=False),
        sa.Column("nightly_rate", sa.Numeric(10, 2), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_booking_rooms_id", "booking_rooms", ["id"])
    op.create_index("ix_booking_rooms_booking_id", "booking_rooms", ["booking_id"])
    op.create_index("ix_booking_rooms_room_id", "booking_rooms", ["room_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_method", sa.String(50), nullable=False),
        sa.Column("transaction_id", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'completed'")),
        *_timestamps(updated=False),
        sa.CheckConstraint(
            "payment_method IN ('credit_card', 'debit_card', 'cash', 'bank_transfer')",
            name="check_payment_method",
        ),
    )
    op.create_index("ix_payments_id", "payments", ["id"])
    op.create_index("ix_payments_booking_id", "payments", ["booking_id"])
    op.create_index("ix_payments_status", "payments", ["status"])


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("booking_rooms")
    op.drop_table("bookings")
    op.drop_table("rooms")
    op.drop_table("room_categories")
    op.drop_table("users")
