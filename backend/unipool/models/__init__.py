from unipool.models.user import User
from unipool.models.vehicle import Vehicle
from unipool.models.ride import Ride, RideStatus
from unipool.models.booking import Booking, BookingStatus
from unipool.models.review import Review

__all__ = [
    "User", "Vehicle",
    "Ride", "RideStatus",
    "Booking", "BookingStatus",
    "Review",
]
