"""
Booking lifecycle: create, pay, cancel, and move through check-in/check-out.

CONCURRENCY STRATEGY: Pessimistic row locks inside one unit of work
===================================================================

Problem:
  Two guests request the same room for overlapping nights at the same time.
  Both run the conflict query, both see nothing, both insert.
  Result: Double-booking.

Solution:
  The requested room rows are locked (SELECT ... FOR UPDATE, ordered by id so
  concurrent requests acquire locks in the same order) before the conflict
  query runs. A second request touching any of those rooms blocks until the
  first commits or rolls back; under READ COMMITTED its conflict query then
  sees the committed booking and it fails with AvailabilityConflictError.

  Payment, cancellation and status changes lock the booking row itself, so two
  payments for one booking cannot both pass the pending_payment check.

  Each operation runs inside `unit_of_work`: any error, including one raised
  after some rows were flushed, rolls the whole operation back.

State machine:

  pending_payment -> confirmed -> checked_in -> checked_out
  pending_payment -> cancelled
  confirmed       -> cancelled
"""

import time
import uuid
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import (
    AuthorizationError,
    AvailabilityConflictError,
    BookingError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from app.core.logging import get_logger
from app.core.metrics import observe_booking_latency, record_booking_operation
from app.db.session import unit_of_work
from app.models.booking import Booking, BookingRoom, Payment, BOOKING_STATUSES, PAYMENT_METHODS
from app.models.room import Room
from app.services.availability_service import find_conflicts, validate_stay
from app.services.pricing import count_nights, price

logger = get_logger(__name__)

ALLOWED_TRANSITIONS = {
    "pending_payment": {"confirmed", "cancelled"},
    "confirmed": {"checked_in", "cancelled"},
    "checked_in": {"checked_out"},
    "checked_out": set(),
    "cancelled": set(),
}


def _hydrated():
    """Loader options for the canonical booking read shape."""
    return (
        selectinload(Booking.user),
        selectinload(Booking.booking_rooms).selectinload(BookingRoom.room),
        selectinload(Booking.payments),
    )


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    """Booking with its user, rooms (with category) and payments."""
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .options(*_hydrated())
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


async def get_user_bookings(db: AsyncSession, user_id: int) -> list[Booking]:
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .options(*_hydrated())
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_all_bookings(db: AsyncSession, status: Optional[str] = None) -> list[Booking]:
    query = (
        select(Booking)
        .options(*_hydrated())
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .execution_options(populate_existing=True)
    )
    if status is not None:
        if status not in BOOKING_STATUSES:
            raise ValidationError("Invalid status")
        query = query.where(Booking.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())


async def _lock_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


def parse_amount(amount: str) -> Decimal:
    """Parse a decimal money string; floats never enter the comparison."""
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValidationError("Invalid payment amount")
    if not value.is_finite() or value <= 0:
        raise ValidationError("Invalid payment amount")
    return value


def generate_transaction_id() -> str:
    return f"TXN_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


async def create_booking(
    db: AsyncSession,
    user_id: int,
    check_in: date,
    check_out: date,
    guest_count: int,
    room_ids: Iterable[int],
    special_requests: Optional[str] = None,
) -> Booking:
    """
    Reserve one or more rooms for a stay, all or nothing.

    The booking starts in pending_payment; each room's current category price
    is snapshotted as its nightly rate.
    """
    started = time.perf_counter()
    room_ids = list(room_ids)

    try:
        validate_stay(check_in, check_out)
        if not room_ids:
            raise ValidationError("At least one room is required")
        if len(set(room_ids)) != len(room_ids):
            raise ValidationError("Duplicate room ids in request")
        if guest_count < 1:
            raise ValidationError("Guest count must be at least 1")

        async with unit_of_work(db):
            # Serializes concurrent bookings that share any of these rooms
            locked = await db.execute(
                select(Room)
                .where(Room.id.in_(room_ids))
                .order_by(Room.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            rooms = list(locked.scalars().all())

            conflicts = await find_conflicts(db, room_ids, check_in, check_out)
            if conflicts:
                logger.warning(
                    "booking_conflict",
                    user_id=user_id,
                    room_ids=sorted(conflicts),
                    check_in=check_in.isoformat(),
                    check_out=check_out.isoformat(),
                )
                raise AvailabilityConflictError(
                    "One or more selected rooms are no longer available for the selected dates"
                )

            if len(rooms) != len(room_ids):
                missing = sorted(set(room_ids) - {room.id for room in rooms})
                raise NotFoundError(f"Rooms not found: {', '.join(map(str, missing))}")

            nights = count_nights(check_in, check_out)
            rates = {room.id: room.category.base_price for room in rooms}
            total = price(rates.values(), nights)

            booking = Booking(
                user_id=user_id,
                check_in_date=check_in,
                check_out_date=check_out,
                total_amount=total,
                status="pending_payment",
                guest_count=guest_count,
                special_requests=special_requests,
            )
            db.add(booking)
            await db.flush()

            for room_id in room_ids:
                db.add(BookingRoom(booking_id=booking.id, room_id=room_id, nightly_rate=rates[room_id]))
            await db.flush()

            booking = await get_booking(db, booking.id)
    except AvailabilityConflictError:
        record_booking_operation("create", "conflict")
        raise
    except BookingError:
        record_booking_operation("create", "rejected")
        raise
    except Exception:
        record_booking_operation("create", "error")
        raise

    record_booking_operation("create", "success")
    observe_booking_latency("create", time.perf_counter() - started)
    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=user_id,
        room_ids=room_ids,
        nights=nights,
        total_amount=str(total),
    )
    return booking


async def process_payment(
    db: AsyncSession,
    booking_id: int,
    amount: str,
    payment_method: str,
    transaction_id: Optional[str] = None,
) -> Booking:
    """
    Record a payment for a pending booking and confirm it.

    The amount must equal the booking total exactly; a one-cent difference
    fails the payment instead of recording a partial amount.
    """
    started = time.perf_counter()
    value = parse_amount(amount)
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError("Invalid payment method")

    try:
        async with unit_of_work(db):
            booking = await _lock_booking(db, booking_id)

            if booking.status != "pending_payment":
                raise StateConflictError("Booking is not pending payment")
            if value != Decimal(booking.total_amount):
                raise StateConflictError("Payment amount does not match booking total")

            payment = Payment(
                booking_id=booking.id,
                amount=value,
                payment_method=payment_method,
                transaction_id=transaction_id or generate_transaction_id(),
                status="completed",
            )
            db.add(payment)
            booking.status = "confirmed"
            await db.flush()

            booking = await get_booking(db, booking_id)
    except BookingError:
        record_booking_operation("pay", "rejected")
        raise

    record_booking_operation("pay", "success")
    observe_booking_latency("pay", time.perf_counter() - started)
    logger.info(
        "payment_processed",
        booking_id=booking_id,
        payment_id=payment.id,
        amount=str(value),
        method=payment_method,
        transaction_id=payment.transaction_id,
    )
    return booking


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    requesting_user_id: Optional[int] = None,
) -> Booking:
    """
    Cancel a booking, freeing its rooms for the stay.

    When `requesting_user_id` is given the booking must belong to that user;
    callers with staff rights pass None.
    """
    try:
        async with unit_of_work(db):
            booking = await _lock_booking(db, booking_id)

            if requesting_user_id is not None and booking.user_id != requesting_user_id:
                raise AuthorizationError("Unauthorized")
            if booking.status == "cancelled":
                raise StateConflictError("Booking is already cancelled")
            if booking.status == "checked_out":
                raise StateConflictError("Cannot cancel a completed booking")
            if "cancelled" not in ALLOWED_TRANSITIONS[booking.status]:
                raise StateConflictError("Cannot cancel a booking after check-in")

            previous = booking.status
            booking.status = "cancelled"
            await db.flush()

            booking = await get_booking(db, booking_id)
    except BookingError:
        record_booking_operation("cancel", "rejected")
        raise

    record_booking_operation("cancel", "success")
    logger.info(
        "booking_cancelled",
        booking_id=booking_id,
        previous_status=previous,
        by_owner=requesting_user_id is not None,
    )
    return booking


async def update_booking_status(db: AsyncSession, booking_id: int, new_status: str) -> Booking:
    """
    Staff-driven status change along ALLOWED_TRANSITIONS.

    Re-applying the current status is rejected rather than treated as a no-op,
    and nothing ever leaves cancelled or checked_out.
    """
    if new_status not in BOOKING_STATUSES:
        raise ValidationError("Invalid status")

    try:
        async with unit_of_work(db):
            booking = await _lock_booking(db, booking_id)
            current = booking.status

            if current == "cancelled":
                raise StateConflictError("Cannot change status of cancelled booking")
            if current == "checked_out":
                raise StateConflictError("Cannot change status of completed booking")
            if new_status not in ALLOWED_TRANSITIONS[current]:
                raise StateConflictError(f"Cannot change status from {current} to {new_status}")

            booking.status = new_status
            await db.flush()

            booking = await get_booking(db, booking_id)
    except BookingError:
        record_booking_operation("update_status", "rejected")
        raise

    record_booking_operation("update_status", "success")
    logger.info(
        "booking_status_updated",
        booking_id=booking_id,
        from_status=current,
        to_status=new_status,
    )
    return booking
