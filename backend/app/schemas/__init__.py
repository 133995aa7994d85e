from app.schemas.user import UserCreate, UserResponse, UserLogin, Token
from app.schemas.room import (
    RoomCategoryCreate, RoomCategoryUpdate, RoomCategoryResponse,
    RoomCreate, RoomUpdate, RoomStatusUpdate, RoomResponse,
    AvailableRoomResponse, AvailabilitySearchResponse,
)
from app.schemas.booking import (
    BookingCreate, BookingResponse, PaymentCreate, BookingStatusUpdate,
)

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "RoomCategoryCreate", "RoomCategoryUpdate", "RoomCategoryResponse",
    "RoomCreate", "RoomUpdate", "RoomStatusUpdate", "RoomResponse",
    "AvailableRoomResponse", "AvailabilitySearchResponse",
    "BookingCreate", "BookingResponse", "PaymentCreate", "BookingStatusUpdate",
]
