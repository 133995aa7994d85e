"""
Room category management. Writes invalidate the cached public listing.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.room import RoomCategoryCreate, RoomCategoryResponse, RoomCategoryUpdate
from app.services import room_category_service
from app.services.cache_service import invalidate_category_cache
from app.core.security import require_admin, require_manager

router = APIRouter(prefix="/admin/room-categories", tags=["Room Category Management"])


@router.get("/", response_model=list[RoomCategoryResponse], dependencies=[Depends(require_manager)])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await room_category_service.get_all_categories(db)


@router.get(
    "/{category_id}", response_model=RoomCategoryResponse, dependencies=[Depends(require_manager)]
)
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
    return await room_category_service.get_category_by_id(db, category_id)


@router.post(
    "/",
    response_model=RoomCategoryResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_category(category_data: RoomCategoryCreate, db: AsyncSession = Depends(get_db)):
    category = await room_category_service.create_category(db, category_data)
    await invalidate_category_cache()
    return category


@router.put(
    "/{category_id}", response_model=RoomCategoryResponse, dependencies=[Depends(require_admin)]
)
async def update_category(
    category_id: int, updates: RoomCategoryUpdate, db: AsyncSession = Depends(get_db)
):
    """Edit a category. Existing bookings keep the rate they were booked at."""
    category = await room_category_service.update_category(db, category_id, updates)
    await invalidate_category_cache()
    return category


@router.delete(
    "/{category_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)]
)
async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)):
    await room_category_service.delete_category(db, category_id)
    await invalidate_category_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
