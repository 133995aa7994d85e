"""
Room inventory management. Staff can read and change housekeeping status,
managers can edit rooms, only admins create or delete them.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.room import RoomCreate, RoomResponse, RoomStatusUpdate, RoomUpdate
from app.services import room_service
from app.core.security import require_admin, require_manager, require_staff

router = APIRouter(prefix="/admin/rooms", tags=["Room Management"])


@router.get("/", response_model=list[RoomResponse], dependencies=[Depends(require_staff)])
async def list_rooms(db: AsyncSession = Depends(get_db)):
    return await room_service.get_all_rooms(db)


@router.get(
    "/category/{category_id}",
    response_model=list[RoomResponse],
    dependencies=[Depends(require_staff)],
)
async def list_rooms_by_category(category_id: int, db: AsyncSession = Depends(get_db)):
    return await room_service.get_rooms_by_category(db, category_id)


@router.get("/{room_id}", response_model=RoomResponse, dependencies=[Depends(require_staff)])
async def get_room(room_id: int, db: AsyncSession = Depends(get_db)):
    return await room_service.get_room_by_id(db, room_id)


@router.post(
    "/",
    response_model=RoomResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_room(room_data: RoomCreate, db: AsyncSession = Depends(get_db)):
    return await room_service.create_room(db, room_data)


@router.put("/{room_id}", response_model=RoomResponse, dependencies=[Depends(require_manager)])
async def update_room(room_id: int, updates: RoomUpdate, db: AsyncSession = Depends(get_db)):
    return await room_service.update_room(db, room_id, updates)


@router.put(
    "/{room_id}/status", response_model=RoomResponse, dependencies=[Depends(require_staff)]
)
async def update_room_status(
    room_id: int, status_data: RoomStatusUpdate, db: AsyncSession = Depends(get_db)
):
    return await room_service.update_room_status(db, room_id, status_data.status)


@router.delete(
    "/{room_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)]
)
async def delete_room(room_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a room that has never been booked."""
    await room_service.delete_room(db, room_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
