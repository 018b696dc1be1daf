"""
Pydantic schemas for user-related request/response validation.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, max_length=72)
    role: Literal["passenger", "driver", "both"] = "passenger"
    phone: Optional[str] = Field(None, max_length=30)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: str
    phone: Optional[str]
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserUpdate(BaseModel):
    """Profile fields a user may change. Email and password have their own paths."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[Literal["passenger", "driver", "both"]] = None
    phone: Optional[str] = Field(None, max_length=30)

    model_config = {"extra": "forbid"}


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=72)

    model_config = {"extra": "forbid"}


class AccountDeletionResponse(BaseModel):
    user_id: int
    deactivated_ride_ids: list[int]
    rejected_booking_ids: list[int]
    cancelled_booking_ids: list[int]
