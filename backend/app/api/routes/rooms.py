"""
Public room endpoints: availability search, category listing, room details.
The category listing is cached in Redis.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.room import (
    AvailabilitySearchParams,
    AvailabilitySearchResponse,
    AvailableRoomResponse,
    RoomCategoryResponse,
    RoomResponse,
)
from app.services import availability_service, room_category_service, room_service
from app.services.cache_service import get_cached_categories, set_cached_categories
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/rooms", tags=["Rooms"])


@router.get("/availability", response_model=AvailabilitySearchResponse)
async def search_availability(
    check_in_date: date = Query(...),
    check_out_date: date = Query(...),
    guest_count: int = Query(1, ge=1, le=20),
    category_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Rooms free for the whole stay that fit the party, cheapest first."""
    results = await availability_service.search_available_rooms(
        db, check_in_date, check_out_date, guest_count, category_id
    )
    rooms = [
        AvailableRoomResponse(
            **RoomResponse.model_validate(item["room"]).model_dump(),
            nights=item["nights"],
            total_price=item["total_price"],
        )
        for item in results
    ]
    return AvailabilitySearchResponse(
        rooms=rooms,
        search_params=AvailabilitySearchParams(
            check_in_date=check_in_date,
            check_out_date=check_out_date,
            guest_count=guest_count,
            category_id=category_id,
        ),
        total_results=len(rooms),
    )


@router.get("/categories", response_model=list[RoomCategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)):
    cached = await get_cached_categories()
    if cached is not None:
        logger.info("categories_cache_hit")
        return cached

    categories = await room_category_service.get_all_categories(db)
    data = [RoomCategoryResponse.model_validate(c).model_dump(mode="json") for c in categories]
    await set_cached_categories(data)
    return data


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(room_id: int, db: AsyncSession = Depends(get_db)):
    return await room_service.get_room_by_id(db, room_id)
