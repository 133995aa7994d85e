from app.models.user import User
from app.models.room import Room, RoomCategory
from app.models.booking import Booking, BookingRoom, Payment

__all__ = ["User", "Room", "RoomCategory", "Booking", "BookingRoom", "Payment"]
