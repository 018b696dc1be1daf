"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field


class BookingCreate(BaseModel):
    ride_id: int
    seats_booked: int = Field(default=1, gt=0, le=8)


class BookingStatusUpdate(BaseModel):
    """Only the status can change; seats and ride are fixed at request time."""

    status: Literal["accepted", "rejected", "cancelled"]

    model_config = {"extra": "forbid"}


class BookingResponse(BaseModel):
    id: int
    ride_id: int
    passenger_id: int
    seats_booked: int
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}
