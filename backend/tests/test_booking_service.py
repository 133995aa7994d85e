"""
Tests for the booking lifecycle: creation, payment, cancellation and
status transitions, called directly against a database session.
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AuthorizationError,
    AvailabilityConflictError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from app.models import Booking, BookingRoom, Payment, RoomCategory
from app.services import booking_service
from tests.conftest import IS_POSTGRES, stay


async def _count(db: AsyncSession, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


async def _book(db: AsyncSession, user_id: int, rooms: list[int], offset: int = 10, nights: int = 3):
    check_in, check_out = stay(offset, nights)
    return await booking_service.create_booking(
        db, user_id, check_in, check_out, guest_count=2, room_ids=rooms
    )


@pytest.mark.asyncio
async def test_booking_scenario_create_pay_conflict(db_session: AsyncSession, guest, room_ids):
    """Two rooms for three nights, paid in full, then a clashing request."""
    user_id = guest.id
    r1, r2 = room_ids["R1"], room_ids["R2"]

    booking = await _book(db_session, user_id, [r1, r2], offset=10, nights=3)
    assert booking.status == "pending_payment"
    assert booking.total_amount == Decimal("720.00")
    assert sorted(br.room_id for br in booking.booking_rooms) == sorted([r1, r2])
    assert booking.user.id == user_id
    assert booking.payments == []

    paid = await booking_service.process_payment(db_session, booking.id, "720.00", "credit_card")
    assert paid.status == "confirmed"
    assert len(paid.payments) == 1

    with pytest.raises(AvailabilityConflictError):
        await _book(db_session, user_id, [r1], offset=11, nights=3)


@pytest.mark.asyncio
async def test_create_snapshots_category_rates(db_session: AsyncSession, guest, categories, room_ids):
    booking = await _book(db_session, guest.id, [room_ids["R1"], room_ids["R2"]])
    rates = {br.room_id: br.nightly_rate for br in booking.booking_rooms}
    assert rates == {room_ids["R1"]: Decimal("90.00"), room_ids["R2"]: Decimal("150.00")}
    # total == sum(rate * nights)
    assert booking.total_amount == sum(rates.values()) * 3


@pytest.mark.asyncio
async def test_price_change_does_not_touch_existing_booking(db_session: AsyncSession, guest, categories, room_ids):
    booking = await _book(db_session, guest.id, [room_ids["R1"]])
    booking_id = booking.id

    category = await db_session.get(RoomCategory, categories["standard"].id)
    category.base_price = Decimal("120.00")
    await db_session.commit()

    reloaded = await booking_service.get_booking(db_session, booking_id)
    assert reloaded.total_amount == Decimal("270.00")
    assert reloaded.booking_rooms[0].nightly_rate == Decimal("90.00")


@pytest.mark.asyncio
async def test_back_to_back_booking_succeeds(db_session: AsyncSession, guest, other_guest, room_ids):
    first = await _book(db_session, guest.id, [room_ids["R1"]], offset=10, nights=3)
    second = await _book(db_session, other_guest.id, [room_ids["R1"]], offset=13, nights=2)
    assert second.check_in_date == first.check_out_date
    assert second.status == "pending_payment"


@pytest.mark.asyncio
async def test_conflict_creates_nothing(db_session: AsyncSession, guest, room_ids):
    user_id = guest.id
    await _book(db_session, user_id, [room_ids["R1"]], offset=10, nights=3)

    with pytest.raises(AvailabilityConflictError) as exc:
        # R3 is free but R1 is not: the whole request fails
        await _book(db_session, user_id, [room_ids["R3"], room_ids["R1"]], offset=12, nights=2)
    assert "no longer available" in exc.value.detail

    assert await _count(db_session, Booking) == 1
    assert await _count(db_session, BookingRoom) == 1


@pytest.mark.asyncio
async def test_cancelled_booking_frees_its_rooms(db_session: AsyncSession, guest, other_guest, room_ids):
    other_id = other_guest.id
    booking = await _book(db_session, guest.id, [room_ids["R1"]])
    await booking_service.cancel_booking(db_session, booking.id)

    rebooked = await _book(db_session, other_id, [room_ids["R1"]])
    assert rebooked.status == "pending_payment"


@pytest.mark.asyncio
async def test_create_rejects_inverted_dates(db_session: AsyncSession, guest, room_ids):
    check_in, check_out = stay(10, 3)
    with pytest.raises(ValidationError) as exc:
        await booking_service.create_booking(
            db_session, guest.id, check_out, check_in, guest_count=1, room_ids=[room_ids["R1"]]
        )
    assert exc.value.detail == "Check-out date must be after check-in date"


@pytest.mark.asyncio
async def test_create_rejects_same_day_checkout(db_session: AsyncSession, guest, room_ids):
    check_in, _ = stay(10, 1)
    with pytest.raises(ValidationError):
        await booking_service.create_booking(
            db_session, guest.id, check_in, check_in, guest_count=1, room_ids=[room_ids["R1"]]
        )


@pytest.mark.asyncio
async def test_create_rejects_past_check_in(db_session: AsyncSession, guest, room_ids):
    with pytest.raises(ValidationError) as exc:
        await _book(db_session, guest.id, [room_ids["R1"]], offset=-1, nights=3)
    assert exc.value.detail == "Check-in date cannot be in the past"


@pytest.mark.asyncio
async def test_create_allows_check_in_today(db_session: AsyncSession, guest, room_ids):
    booking = await _book(db_session, guest.id, [room_ids["R1"]], offset=0, nights=1)
    assert booking.total_amount == Decimal("90.00")


@pytest.mark.asyncio
async def test_create_rejects_duplicate_and_empty_room_lists(db_session: AsyncSession, guest, room_ids):
    user_id = guest.id
    with pytest.raises(ValidationError):
        await _book(db_session, user_id, [room_ids["R1"], room_ids["R1"]])
    with pytest.raises(ValidationError):
        await _book(db_session, user_id, [])


@pytest.mark.asyncio
async def test_create_unknown_room_is_not_found(db_session: AsyncSession, guest, room_ids):
    user_id = guest.id
    with pytest.raises(NotFoundError):
        await _book(db_session, user_id, [room_ids["R1"], 99999])
    assert await _count(db_session, Booking) == 0


@pytest.mark.asyncio
async def test_create_rolls_back_when_room_rows_fail(db_session: AsyncSession, guest, room_ids, monkeypatch):
    """A fault after the booking row is flushed leaves no booking behind."""
    user_id = guest.id

    def broken_booking_room(**kwargs):
        raise RuntimeError("simulated fault")

    monkeypatch.setattr(booking_service, "BookingRoom", broken_booking_room)

    with pytest.raises(RuntimeError):
        await _book(db_session, user_id, [room_ids["R1"], room_ids["R2"]])

    assert await _count(db_session, Booking) == 0


@pytest.mark.asyncio
async def test_payment_requires_exact_amount(db_session: AsyncSession, guest, room_ids):
    booking = await _book(db_session, guest.id, [room_ids["B1"]], nights=3)
    booking_id = booking.id
    assert booking.total_amount == Decimal("269.97")

    for wrong in ("269.96", "270.00", "270"):
        with pytest.raises(StateConflictError) as exc:
            await booking_service.process_payment(db_session, booking_id, wrong, "cash")
        assert exc.value.detail == "Payment amount does not match booking total"

    assert await _count(db_session, Payment) == 0

    paid = await booking_service.process_payment(db_session, booking_id, "269.97", "cash")
    assert paid.status == "confirmed"
    assert paid.payments[0].amount == Decimal("269.97")


@pytest.mark.asyncio
async def test_payment_rejects_unparseable_amount(db_session: AsyncSession, guest, room_ids):
    booking = await _book(db_session, guest.id, [room_ids["R1"]])
    for bad in ("abc", "", "NaN", "-270.00"):
        with pytest.raises(ValidationError):
            await booking_service.process_payment(db_session, booking.id, bad, "cash")


@pytest.mark.asyncio
async def test_payment_only_for_pending_bookings(db_session: AsyncSession, guest, room_ids):
    booking = await _book(db_session, guest.id, [room_ids["R1"]])
    booking_id = booking.id
    await booking_service.process_payment(db_session, booking_id, "270.00", "debit_card")

    with pytest.raises(StateConflictError) as exc:
        await booking_service.process_payment(db_session, booking_id, "270.00", "debit_card")
    assert exc.value.detail == "Booking is not pending payment"
    assert await _count(db_session, Payment) == 1


@pytest.mark.asyncio
async def test_payment_for_missing_booking(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await booking_service.process_payment(db_session, 424242, "10.00", "cash")


@pytest.mark.asyncio
async def test_payment_transaction_ids(db_session: AsyncSession, guest, room_ids):
    first = await _book(db_session, guest.id, [room_ids["R1"]], offset=10)
    second = await _book(db_session, guest.id, [room_ids["R3"]], offset=10)
    third = await _book(db_session, guest.id, [room_ids["R2"]], offset=10)

    a = await booking_service.process_payment(db_session, first.id, "270.00", "cash")
    b = await booking_service.process_payment(db_session, second.id, "270.00", "cash")
    c = await booking_service.process_payment(
        db_session, third.id, "450.00", "bank_transfer", transaction_id="BANK-REF-7"
    )

    generated = [a.payments[0].transaction_id, b.payments[0].transaction_id]
    assert all(txn.startswith("TXN_") for txn in generated)
    assert generated[0] != generated[1]
    assert c.payments[0].transaction_id == "BANK-REF-7"


@pytest.mark.asyncio
async def test_cancel_already_cancelled(db_session: AsyncSession, guest, room_ids):
    booking = await _book(db_session, guest.id, [room_ids["R1"]])
    booking_id = booking.id
    cancelled = await booking_service.cancel_booking(db_session, booking_id)
    assert cancelled.status == "cancelled"

    with pytest.raises(StateConflictError) as exc:
        await booking_service.cancel_booking(db_session, booking_id)
    assert exc.value.detail == "Booking is already cancelled"


@pytest.mark.asyncio
async def test_cancel_checked_out_booking(db_session: AsyncSession, guest, room_ids, add_booking):
    booking_id = await add_booking(guest.id, [room_ids["R1"]], *stay(-5, 2), status="checked_out")

    with pytest.raises(StateConflictError) as exc:
        await booking_service.cancel_booking(db_session, booking_id)
    assert exc.value.detail == "Cannot cancel a completed booking"


@pytest.mark.asyncio
async def test_cancel_after_check_in_is_rejected(db_session: AsyncSession, guest, room_ids, add_booking):
    booking_id = await add_booking(guest.id, [room_ids["R1"]], *stay(0, 2), status="checked_in")

    with pytest.raises(StateConflictError):
        await booking_service.cancel_booking(db_session, booking_id)


@pytest.mark.asyncio
async def test_cancel_confirmed_booking(db_session: AsyncSession, guest, room_ids):
    booking = await _book(db_session, guest.id, [room_ids["R1"]])
    await booking_service.process_payment(db_session, booking.id, "270.00", "cash")
    cancelled = await booking_service.cancel_booking(db_session, booking.id, requesting_user_id=guest.id)
    assert cancelled.status == "cancelled"


@pytest.mark.asyncio
async def test_cancel_by_non_owner(db_session: AsyncSession, guest, other_guest, room_ids):
    other_id = other_guest.id
    booking = await _book(db_session, guest.id, [room_ids["R1"]])
    booking_id = booking.id

    with pytest.raises(AuthorizationError):
        await booking_service.cancel_booking(db_session, booking_id, requesting_user_id=other_id)

    reloaded = await booking_service.get_booking(db_session, booking_id)
    assert reloaded.status == "pending_payment"


@pytest.mark.asyncio
async def test_cancel_missing_booking(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await booking_service.cancel_booking(db_session, 424242)


@pytest.mark.asyncio
async def test_status_walks_full_lifecycle(db_session: AsyncSession, guest, room_ids):
    booking = await _book(db_session, guest.id, [room_ids["R1"]])
    for status in ("confirmed", "checked_in", "checked_out"):
        booking = await booking_service.update_booking_status(db_session, booking.id, status)
        assert booking.status == status


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "current,target",
    [
        ("cancelled", "confirmed"),
        ("cancelled", "cancelled"),
        ("checked_out", "checked_in"),
        ("checked_out", "checked_out"),
        ("confirmed", "confirmed"),
        ("confirmed", "pending_payment"),
        ("pending_payment", "checked_in"),
        ("checked_in", "cancelled"),
    ],
)
async def test_status_rejects_forbidden_transitions(
    db_session: AsyncSession, guest, room_ids, add_booking, current, target
):
    booking_id = await add_booking(guest.id, [room_ids["R1"]], *stay(3, 2), status=current)

    with pytest.raises(StateConflictError):
        await booking_service.update_booking_status(db_session, booking_id, target)

    reloaded = await booking_service.get_booking(db_session, booking_id)
    assert reloaded.status == current


@pytest.mark.asyncio
async def test_status_rejects_unknown_value(db_session: AsyncSession, guest, room_ids):
    booking = await _book(db_session, guest.id, [room_ids["R1"]])
    with pytest.raises(ValidationError) as exc:
        await booking_service.update_booking_status(db_session, booking.id, "vanished")
    assert exc.value.detail == "Invalid status"


@pytest.mark.asyncio
async def test_list_user_and_all_bookings(db_session: AsyncSession, guest, other_guest, room_ids):
    guest_id, other_id = guest.id, other_guest.id
    mine = await _book(db_session, guest_id, [room_ids["R1"]])
    theirs = await _book(db_session, other_id, [room_ids["R2"]])
    await booking_service.cancel_booking(db_session, theirs.id)

    assert [b.id for b in await booking_service.get_user_bookings(db_session, guest_id)] == [mine.id]
    assert {b.id for b in await booking_service.get_all_bookings(db_session)} == {mine.id, theirs.id}
    cancelled = await booking_service.get_all_bookings(db_session, status="cancelled")
    assert [b.id for b in cancelled] == [theirs.id]


@pytest.mark.asyncio
@pytest.mark.skipif(not IS_POSTGRES, reason="row locks need PostgreSQL")
async def test_concurrent_bookings_for_same_room(session_factory, guest, other_guest, room_ids):
    """Only one of two simultaneous overlapping requests can win."""
    users = [guest.id, other_guest.id]
    room = room_ids["R1"]

    async def attempt(user_id: int, offset: int):
        async with session_factory() as session:
            return await _book(session, user_id, [room], offset=offset, nights=3)

    results = await asyncio.gather(
        attempt(users[0], 10), attempt(users[1], 11), return_exceptions=True
    )

    succeeded = [r for r in results if isinstance(r, Booking)]
    conflicts = [r for r in results if isinstance(r, AvailabilityConflictError)]
    assert len(succeeded) == 1
    assert len(conflicts) == 1
