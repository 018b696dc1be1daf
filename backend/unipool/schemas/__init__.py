from unipool.schemas.user import (
    UserCreate, UserResponse, UserLogin, Token, UserUpdate, PasswordChange, AccountDeletionResponse,
)
from unipool.schemas.vehicle import VehicleCreate, VehicleResponse, VehicleUpdate
from unipool.schemas.ride import (
    RideCreate, RideResponse, RideListResponse, RideStatusUpdate, RideDeactivationResponse,
)
from unipool.schemas.booking import BookingCreate, BookingResponse, BookingStatusUpdate
from unipool.schemas.review import ReviewCreate, ReviewResponse, DriverStats

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token", "UserUpdate", "PasswordChange",
    "AccountDeletionResponse",
    "VehicleCreate", "VehicleResponse", "VehicleUpdate",
    "RideCreate", "RideResponse", "RideListResponse", "RideStatusUpdate",
    "RideDeactivationResponse",
    "BookingCreate", "BookingResponse", "BookingStatusUpdate",
    "ReviewCreate", "ReviewResponse", "DriverStats",
]
