"""
Room availability.

Two stays conflict when `existing.check_out > new.check_in AND
existing.check_in < new.check_out` (half-open ranges), so a checkout day may
be another guest's check-in day. Only bookings in OCCUPYING_STATUSES hold a
room; checked-out and cancelled bookings never conflict.
"""

from datetime import date, datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from app.models.booking import Booking, BookingRoom, OCCUPYING_STATUSES
from app.models.room import Room, RoomCategory
from app.services.pricing import count_nights, price

logger = get_logger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def validate_stay(check_in: date, check_out: date) -> None:
    """Reject empty or inverted ranges and check-ins in the past."""
    if check_in >= check_out:
        raise ValidationError("Check-out date must be after check-in date")
    if check_in < utc_today():
        raise ValidationError("Check-in date cannot be in the past")


def _occupied_room_ids(check_in: date, check_out: date):
    return (
        select(BookingRoom.room_id)
        .join(Booking, Booking.id == BookingRoom.booking_id)
        .where(
            Booking.status.in_(OCCUPYING_STATUSES),
            Booking.check_out_date > check_in,
            Booking.check_in_date < check_out,
        )
    )


async def find_conflicts(
    db: AsyncSession,
    room_ids: Iterable[int],
    check_in: date,
    check_out: date,
) -> set[int]:
    """Return the subset of `room_ids` already reserved for an overlapping stay."""
    room_ids = list(room_ids)
    if not room_ids:
        return set()

    query = _occupied_room_ids(check_in, check_out).where(BookingRoom.room_id.in_(room_ids))
    result = await db.execute(query)
    return set(result.scalars().all())


async def search_available_rooms(
    db: AsyncSession,
    check_in: date,
    check_out: date,
    guest_count: int,
    category_id: Optional[int] = None,
) -> list[dict]:
    """
    Rooms that can host `guest_count` guests for the whole stay.

    Only rooms in housekeeping status "available" are offered. Each result
    carries the stay length and its price at the category's current rate.
    """
    validate_stay(check_in, check_out)

    query = (
        select(Room)
        .join(RoomCategory, RoomCategory.id == Room.category_id)
        .where(
            Room.status == "available",
            RoomCategory.max_occupancy >= guest_count,
            Room.id.not_in(_occupied_room_ids(check_in, check_out)),
        )
        .order_by(RoomCategory.base_price.asc(), Room.room_number.asc())
        .execution_options(populate_existing=True)
    )
    if category_id is not None:
        query = query.where(Room.category_id == category_id)

    result = await db.execute(query)
    rooms = list(result.scalars().all())

    nights = count_nights(check_in, check_out)
    logger.info(
        "availability_searched",
        check_in=check_in.isoformat(),
        check_out=check_out.isoformat(),
        guest_count=guest_count,
        results=len(rooms),
    )
    return [
        {"room": room, "nights": nights, "total_price": price([room.category.base_price], nights)}
        for room in rooms
    ]

