"""
Booking endpoints: request seats, change a booking's status, list your bookings.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from unipool.db.session import get_db
from unipool.models.booking import BookingStatus
from unipool.schemas.booking import BookingCreate, BookingResponse, BookingStatusUpdate
from unipool.services import booking_service
from unipool.services.cache_service import invalidate_ride_cache
from unipool.core.security import get_current_user_id
from unipool.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def request_booking_endpoint(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Request seats on a ride.

    Seats are reserved immediately and the booking starts as pending until
    the driver accepts or rejects it. Returns 409 if the ride does not have
    enough seats left or is no longer active.
    """
    booking = await booking_service.request_booking(
        db, booking_data.ride_id, user_id, booking_data.seats_booked
    )
    # Seat counts in cached listings are now stale
    await invalidate_ride_cache()
    return booking


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking_status_endpoint(
    booking_id: int,
    status_data: BookingStatusUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Accept, reject or cancel a booking.

    The ride's driver accepts or rejects; the passenger cancels. Rejecting
    or cancelling returns the seats to the ride. Transitions outside the
    booking lifecycle return 400.
    """
    new_status = BookingStatus(status_data.status)
    booking = await booking_service.get_booking(db, booking_id)
    await booking_service.authorize_status_change(db, booking, user_id, new_status)

    booking = await booking_service.set_status(db, booking_id, new_status)
    await invalidate_ride_cache()
    return booking


@router.get("/", response_model=list[BookingResponse])
async def list_my_bookings_endpoint(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings made by the authenticated user."""
    return await booking_service.list_for_passenger(db, user_id)
