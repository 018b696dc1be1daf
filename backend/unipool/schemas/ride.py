"""
Pydantic schemas for ride-related request/response validation.
"""

from datetime import datetime, timezone
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator


class RideCreate(BaseModel):
    vehicle_id: Optional[int] = None
    source_lat: float = Field(..., ge=-90, le=90)
    source_lng: float = Field(..., ge=-180, le=180)
    source_address: str = Field(..., min_length=1, max_length=255)
    dest_lat: float = Field(..., ge=-90, le=90)
    dest_lng: float = Field(..., ge=-180, le=180)
    dest_address: str = Field(..., min_length=1, max_length=255)
    departure_time: datetime
    seats_total: int = Field(..., gt=0, le=8)
    cost_per_seat: int = Field(..., gt=0)

    @field_validator("departure_time")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps from clients are treated as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class RideResponse(BaseModel):
    id: int
    driver_id: int
    vehicle_id: Optional[int]
    source_lat: float
    source_lng: float
    source_address: str
    dest_lat: float
    dest_lng: float
    dest_address: str
    departure_time: datetime
    seats_total: int
    seats_available: int
    cost_per_seat: int
    is_active: bool
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class RideListResponse(BaseModel):
    rides: list[RideResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class RideStatusUpdate(BaseModel):
    status: Literal["ongoing", "completed"]


class RideDeactivationResponse(BaseModel):
    ride_id: int
    is_active: bool
    rejected_booking_ids: list[int]
    failed_booking_ids: list[int]
