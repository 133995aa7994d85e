"""
Pydantic schemas for booking-related request/response validation.

Money goes over the wire as decimal strings in both directions.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional
from pydantic import BaseModel, Field

from app.schemas.user import UserSummary

PaymentMethod = Literal["credit_card", "debit_card", "cash", "bank_transfer"]


class BookingCreate(BaseModel):
    check_in_date: date
    check_out_date: date
    guest_count: int = Field(..., ge=1, le=20)
    room_ids: list[int] = Field(..., min_length=1)
    special_requests: Optional[str] = Field(None, max_length=1000)


class PaymentCreate(BaseModel):
    # Kept as text so an unparseable value is a domain validation error
    amount: str = Field(..., min_length=1, max_length=20)
    payment_method: PaymentMethod
    transaction_id: Optional[str] = Field(None, max_length=100)


class BookingStatusUpdate(BaseModel):
    status: str


class CategorySummary(BaseModel):
    id: int
    name: str
    description: Optional[str]

    model_config = {"from_attributes": True}


class BookedRoomResponse(BaseModel):
    room_id: int
    room_number: str
    nightly_rate: Decimal
    category: CategorySummary

    model_config = {"from_attributes": True}


class PaymentResponse(BaseModel):
    id: int
    amount: Decimal
    payment_method: str
    transaction_id: Optional[str]
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: int
    user_id: int
    check_in_date: date
    check_out_date: date
    total_amount: Decimal
    status: str
    guest_count: int
    special_requests: Optional[str]
    created_at: datetime
    updated_at: datetime
    user: UserSummary
    rooms: list[BookedRoomResponse] = Field(validation_alias="booking_rooms")
    payments: list[PaymentResponse]

    model_config = {"from_attributes": True}
