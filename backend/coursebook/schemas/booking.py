"""
Pydantic schemas for booking-related responses.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class BookingResponse(BaseModel):
    id: int
    user_id: int
    course_id: int
    booked_at: datetime
    cancelled_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    course_id: int
    cancelled_at: datetime


class UserBookingItem(BaseModel):
    booking_id: int
    course_id: int
    name: str
    start_at: datetime
    end_at: datetime
    coach_user_id: int
    booked_at: datetime
    cancelled_at: Optional[datetime] = None


class UserBookingOverview(BaseModel):
    credit_remain: int
    credit_usage: int
    course_booking: list[UserBookingItem]
