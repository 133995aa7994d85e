"""
Room inventory store.

Two rules the booking core depends on are enforced here: room numbers are
unique at write time, and a room that appears in any booking can never be
deleted (booking history must not be orphaned).
"""

from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging import get_logger
from app.db.session import unit_of_work
from app.models.booking import BookingRoom
from app.models.room import Room, RoomCategory
from app.schemas.room import RoomCreate, RoomUpdate

logger = get_logger(__name__)


async def get_all_rooms(db: AsyncSession) -> list[Room]:
    result = await db.execute(
        select(Room).order_by(Room.room_number).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_room_by_id(db: AsyncSession, room_id: int) -> Room:
    result = await db.execute(
        select(Room).where(Room.id == room_id).execution_options(populate_existing=True)
    )
    room = result.scalar_one_or_none()
    if room is None:
        raise NotFoundError("Room not found")
    return room


async def get_rooms_by_category(db: AsyncSession, category_id: int) -> list[Room]:
    result = await db.execute(
        select(Room)
        .where(Room.category_id == category_id)
        .order_by(Room.room_number)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _ensure_unique_number(db: AsyncSession, room_number: str, exclude_id: Optional[int] = None):
    query = select(Room.id).where(Room.room_number == room_number)
    if exclude_id is not None:
        query = query.where(Room.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise ValidationError("Room number already exists")


async def _ensure_category(db: AsyncSession, category_id: int):
    if await db.get(RoomCategory, category_id) is None:
        raise NotFoundError("Room category not found")


async def create_room(db: AsyncSession, data: RoomCreate) -> Room:
    async with unit_of_work(db):
        await _ensure_unique_number(db, data.room_number)
        await _ensure_category(db, data.category_id)

        room = Room(**data.model_dump())
        db.add(room)
        await db.flush()

    logger.info("room_created", room_id=room.id, room_number=room.room_number)
    return await get_room_by_id(db, room.id)


async def update_room(db: AsyncSession, room_id: int, updates: RoomUpdate) -> Room:
    changes = updates.model_dump(exclude_unset=True)
    for field in ("room_number", "category_id", "status", "floor"):
        if field in changes and changes[field] is None:
            raise ValidationError(f"Field '{field}' cannot be null")

    async with unit_of_work(db):
        room = await get_room_by_id(db, room_id)
        if "room_number" in changes:
            await _ensure_unique_number(db, changes["room_number"], exclude_id=room_id)
        if "category_id" in changes:
            await _ensure_category(db, changes["category_id"])

        for field, value in changes.items():
            setattr(room, field, value)
        await db.flush()

    logger.info("room_updated", room_id=room_id, fields=sorted(changes))
    # Reload so a changed category relationship is reflected
    return await get_room_by_id(db, room_id)


async def update_room_status(db: AsyncSession, room_id: int, status: str) -> Room:
    return await update_room(db, room_id, RoomUpdate(status=status))


async def delete_room(db: AsyncSession, room_id: int) -> None:
    async with unit_of_work(db):
        room = await get_room_by_id(db, room_id)
        references = await db.scalar(
            select(func.count(BookingRoom.id)).where(BookingRoom.room_id == room_id)
        )
        if references:
            raise ValidationError("Cannot delete room with existing bookings")
        await db.delete(room)

    logger.info("room_deleted", room_id=room_id)
