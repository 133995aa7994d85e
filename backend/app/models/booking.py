"""
Booking, its per-room rate snapshots and its payments.

Key design decisions:
- Status field drives the lifecycle; bookings are never deleted
- BookingRoom.nightly_rate freezes the category price at booking time, so
  later price edits never change historical totals
- Payments are append-only; a booking may collect several attempts
"""

from sqlalchemy import (
    Column, Integer, String, Text, Date, Numeric, ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, CreatedAtMixin

BOOKING_STATUSES = ("pending_payment", "confirmed", "checked_in", "checked_out", "cancelled")
# Statuses that hold a room for their date range
OCCUPYING_STATUSES = ("pending_payment", "confirmed", "checked_in")
PAYMENT_METHODS = ("credit_card", "debit_card", "cash", "bank_transfer")


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="pending_payment")
    guest_count = Column(Integer, nullable=False)
    special_requests = Column(Text, nullable=True)

    user = relationship("User", back_populates="bookings")
    booking_rooms = relationship(
        "BookingRoom", back_populates="booking", order_by="BookingRoom.id"
    )
    payments = relationship("Payment", back_populates="booking", order_by="Payment.id")

    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="check_booking_date_order"),
        CheckConstraint("guest_count > 0", name="check_booking_guest_count_positive"),
        CheckConstraint(
            "status IN ('pending_payment', 'confirmed', 'checked_in', 'checked_out', 'cancelled')",
            name="check_booking_status",
        ),
        Index("ix_bookings_user_id", "user_id"),
        Index("ix_bookings_status", "status"),
        # Overlap lookups filter on both ends of the stay
        Index("ix_bookings_dates", "check_in_date", "check_out_date"),
        Index("ix_bookings_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, status={self.status})>"


class BookingRoom(Base, CreatedAtMixin):
    __tablename__ = "booking_rooms"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    nightly_rate = Column(Numeric(10, 2), nullable=False)

    booking = relationship("Booking", back_populates="booking_rooms")
    room = relationship("Room", back_populates="booking_rooms")

    # Flattened accessors used by the booking response shape
    @property
    def room_number(self) -> str:
        return self.room.room_number

    @property
    def category(self):
        return self.room.category

    def __repr__(self) -> str:
        return f"<BookingRoom(booking={self.booking_id}, room={self.room_id}, rate={self.nightly_rate})>"


class Payment(Base, CreatedAtMixin):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(50), nullable=False)
    transaction_id = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default="completed")

    booking = relationship("Booking", back_populates="payments")

    __table_args__ = (
        CheckConstraint(
            "payment_method IN ('credit_card', 'debit_card', 'cash', 'bank_transfer')",
            name="check_payment_method",
        ),
        Index("ix_payments_booking_id", "booking_id"),
        Index("ix_payments_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, booking={self.booking_id}, amount={self.amount})>"
