from typing import Optional

from pydantic import BaseModel, Field


class VehicleCreate(BaseModel):
    model: str = Field(..., min_length=1, max_length=100)
    plate: str = Field(..., min_length=1, max_length=20)
    color: str = Field(..., min_length=1, max_length=30)
    seats: int = Field(default=4, gt=0, le=8)


class VehicleResponse(BaseModel):
    id: int
    owner_id: int
    model: str
    plate: str
    color: str
    seats: int

    model_config = {"from_attributes": True}


class VehicleUpdate(BaseModel):
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    plate: Optional[str] = Field(None, min_length=1, max_length=20)
    color: Optional[str] = Field(None, min_length=1, max_length=30)
    seats: Optional[int] = Field(None, gt=0, le=8)

    model_config = {"extra": "forbid"}
