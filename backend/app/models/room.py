"""
Room inventory: categories carry the price and capacity, rooms carry the
physical identity (number, floor) and an informational housekeeping status.

Occupancy is never read from Room.status; it is derived from bookings.
"""

from sqlalchemy import (
    Column, Integer, String, Text, Numeric, JSON, ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin

ROOM_STATUSES = ("available", "booked", "cleaning", "out_of_service")


class RoomCategory(Base, TimestampMixin):
    __tablename__ = "room_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(10, 2), nullable=False)
    max_occupancy = Column(Integer, nullable=False)
    amenities = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)

    rooms = relationship("Room", back_populates="category")

    __table_args__ = (
        CheckConstraint("base_price >= 0", name="check_category_base_price_non_negative"),
        CheckConstraint("max_occupancy > 0", name="check_category_max_occupancy_positive"),
    )

    def __repr__(self) -> str:
        return f"<RoomCategory(id={self.id}, name={self.name}, base_price={self.base_price})>"


class Room(Base, TimestampMixin):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String(10), unique=True, nullable=False)
    category_id = Column(Integer, ForeignKey("room_categories.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="available")
    floor = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)

    # Every room read needs the price, so the category always comes along
    category = relationship("RoomCategory", back_populates="rooms", lazy="selectin")
    booking_rooms = relationship("BookingRoom", back_populates="room")

    __table_args__ = (
        CheckConstraint(
            "status IN ('available', 'booked', 'cleaning', 'out_of_service')",
            name="check_room_status",
        ),
        CheckConstraint("floor >= 1", name="check_room_floor_positive"),
        Index("ix_rooms_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, number={self.room_number}, status={self.status})>"
