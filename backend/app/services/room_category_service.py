"""
Room category CRUD.

A category's base price is the rate snapshotted into new bookings; editing it
never touches existing BookingRoom rows.
"""

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging import get_logger
from app.db.session import unit_of_work
from app.models.room import Room, RoomCategory
from app.schemas.room import RoomCategoryCreate, RoomCategoryUpdate

logger = get_logger(__name__)


async def get_all_categories(db: AsyncSession) -> list[RoomCategory]:
    result = await db.execute(select(RoomCategory).order_by(RoomCategory.base_price, RoomCategory.name))
    return list(result.scalars().all())


async def get_category_by_id(db: AsyncSession, category_id: int) -> RoomCategory:
    category = await db.get(RoomCategory, category_id)
    if category is None:
        raise NotFoundError("Room category not found")
    return category


async def create_category(db: AsyncSession, data: RoomCategoryCreate) -> RoomCategory:
    async with unit_of_work(db):
        category = RoomCategory(**data.model_dump())
        db.add(category)
        await db.flush()

    logger.info("room_category_created", category_id=category.id, name=category.name)
    return category


async def update_category(
    db: AsyncSession, category_id: int, updates: RoomCategoryUpdate
) -> RoomCategory:
    async with unit_of_work(db):
        category = await get_category_by_id(db, category_id)
        for field, value in updates.model_dump(exclude_unset=True).items():
            if value is None and field in ("name", "base_price", "max_occupancy", "amenities", "images"):
                raise ValidationError(f"Field '{field}' cannot be null")
            setattr(category, field, value)
        await db.flush()

    logger.info("room_category_updated", category_id=category.id)
    return category


async def delete_category(db: AsyncSession, category_id: int) -> None:
    """Delete a category; rejected while any room still belongs to it."""
    async with unit_of_work(db):
        category = await get_category_by_id(db, category_id)
        room_count = await db.scalar(
            select(func.count(Room.id)).where(Room.category_id == category_id)
        )
        if room_count:
            raise ValidationError("Cannot delete category with existing rooms")
        await db.delete(category)

    logger.info("room_category_deleted", category_id=category_id)
