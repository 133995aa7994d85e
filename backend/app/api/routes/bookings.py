"""
Booking endpoints: reservation, payment, cancellation and staff status changes.

Guests may only act on their own bookings; staff (admin, manager,
receptionist) may act on any.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.booking import BookingCreate, BookingResponse, BookingStatusUpdate, PaymentCreate
from app.services import booking_service
from app.core.exceptions import AuthorizationError
from app.core.security import get_current_user, require_staff
from app.models.user import User

router = APIRouter(prefix="/bookings", tags=["Bookings"])


async def _get_owned_booking(db: AsyncSession, booking_id: int, user: User):
    booking = await booking_service.get_booking(db, booking_id)
    if not user.is_staff and booking.user_id != user.id:
        raise AuthorizationError("Unauthorized")
    return booking


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve rooms for a stay.

    All requested rooms are booked together or not at all. Returns 400 when
    any room is already taken for overlapping dates.
    """
    return await booking_service.create_booking(
        db,
        user_id=user.id,
        check_in=booking_data.check_in_date,
        check_out=booking_data.check_out_date,
        guest_count=booking_data.guest_count,
        room_ids=booking_data.room_ids,
        special_requests=booking_data.special_requests,
    )


@router.post("/{booking_id}/payment", response_model=BookingResponse)
async def pay_booking(
    booking_id: int,
    payment_data: PaymentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Pay the exact booking total and confirm the booking."""
    await _get_owned_booking(db, booking_id, user)
    return await booking_service.process_payment(
        db,
        booking_id,
        amount=payment_data.amount,
        payment_method=payment_data.payment_method,
        transaction_id=payment_data.transaction_id,
    )


@router.get("/my-bookings", response_model=list[BookingResponse])
async def list_my_bookings(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.get_user_bookings(db, user.id)


@router.get("/", response_model=list[BookingResponse])
async def list_all_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    _: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """All bookings, newest first. Staff only."""
    return await booking_service.get_all_bookings(db, status_filter)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _get_owned_booking(db, booking_id, user)


@router.put("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a pending or confirmed booking, releasing its rooms."""
    requesting_user_id = None if user.is_staff else user.id
    return await booking_service.cancel_booking(db, booking_id, requesting_user_id)


@router.put("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    status_data: BookingStatusUpdate,
    _: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Move a booking along its lifecycle (check-in, check-out, ...). Staff only."""
    return await booking_service.update_booking_status(db, booking_id, status_data.status)
