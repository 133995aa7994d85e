"""
Pydantic schemas for rooms, room categories and availability search.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional
from pydantic import BaseModel, Field

RoomStatus = Literal["available", "booked", "cleaning", "out_of_service"]


class RoomCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    base_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    max_occupancy: int = Field(..., ge=1)
    amenities: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)


class RoomCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    max_occupancy: Optional[int] = Field(None, ge=1)
    amenities: Optional[list[str]] = None
    images: Optional[list[str]] = None


class RoomCategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    base_price: Decimal
    max_occupancy: int
    amenities: list[str]
    images: list[str]

    model_config = {"from_attributes": True}


class RoomCreate(BaseModel):
    room_number: str = Field(..., min_length=1, max_length=10)
    category_id: int
    floor: int = Field(..., ge=1)
    notes: Optional[str] = None


class RoomUpdate(BaseModel):
    room_number: Optional[str] = Field(None, min_length=1, max_length=10)
    category_id: Optional[int] = None
    status: Optional[RoomStatus] = None
    floor: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None


class RoomStatusUpdate(BaseModel):
    status: RoomStatus


class RoomResponse(BaseModel):
    id: int
    room_number: str
    category_id: int
    status: str
    floor: int
    notes: Optional[str]
    category: RoomCategoryResponse
    created_at: datetime

    model_config = {"from_attributes": True}


class AvailableRoomResponse(RoomResponse):
    nights: int
    total_price: Decimal


class AvailabilitySearchParams(BaseModel):
    check_in_date: date
    check_out_date: date
    guest_count: int
    category_id: Optional[int] = None


class AvailabilitySearchResponse(BaseModel):
    rooms: list[AvailableRoomResponse]
    search_params: AvailabilitySearchParams
    total_results: int
