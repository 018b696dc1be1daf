from datetime import datetime
from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    ride_id: int
    reviewee_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(default="", max_length=1000)


class ReviewResponse(BaseModel):
    id: int
    ride_id: int
    reviewer_id: int
    reviewee_id: int
    rating: int
    comment: str
    created_at: datetime

    model_config = {"from_attributes": True}


class DriverStats(BaseModel):
    total_rides: int
    active_rides: int
    total_bookings: int
    total_earnings: int
    average_rating: float
