"""
Ride endpoints: offering, searching, lifecycle and deactivation.
Search results are cached in Redis; everything that touches seats is not.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from unipool.db.session import get_db
from unipool.models.ride import Ride, RideStatus
from unipool.schemas.booking import BookingResponse
from unipool.schemas.ride import (
    RideCreate, RideResponse, RideListResponse, RideStatusUpdate, RideDeactivationResponse,
)
from unipool.services import ride_service, booking_service
from unipool.services.cache_service import get_cached_rides, set_cached_rides, invalidate_ride_cache
from unipool.core.security import get_current_user_id
from unipool.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/rides", tags=["Rides"])


def _require_driver(ride: Ride, user_id: int) -> None:
    if ride.driver_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the ride's driver can do this",
        )


@router.post("/", response_model=RideResponse, status_code=status.HTTP_201_CREATED)
async def create_ride_endpoint(
    ride_data: RideCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Offer a ride. The caller is the driver; all seats start available."""
    ride = await ride_service.create_ride(db, ride_data, user_id)
    await invalidate_ride_cache()
    return ride


@router.get("/", response_model=RideListResponse)
async def search_rides_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    source: Optional[str] = Query(None, max_length=100),
    destination: Optional[str] = Query(None, max_length=100),
    min_seats: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """
    Search upcoming active rides by address and free seats.
    Results are cached briefly and invalidated on every seat change.
    """
    cached = await get_cached_rides(page, page_size, source, destination, min_seats)
    if cached:
        logger.info("rides_list_cache_hit", page=page)
        cached["cached"] = True
        return RideListResponse(**cached)

    rides, total = await ride_service.list_rides(
        db, page, page_size, source=source, destination=destination, min_seats=min_seats
    )

    response_data = {
        "rides": [RideResponse.model_validate(r).model_dump(mode="json") for r in rides],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_rides(page, page_size, source, destination, min_seats, response_data)

    return RideListResponse(**response_data)


@router.get("/driver/{driver_id}", response_model=list[RideResponse])
async def list_driver_rides_endpoint(driver_id: int, db: AsyncSession = Depends(get_db)):
    """Every ride a driver has offered, including completed and deactivated ones."""
    return await ride_service.list_rides_for_driver(db, driver_id)


@router.get("/{ride_id}", response_model=RideResponse)
async def get_ride_endpoint(ride_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single ride. Not cached (needs the live seat counter)."""
    return await ride_service.get_ride(db, ride_id)


@router.get("/{ride_id}/bookings", response_model=list[BookingResponse])
async def list_ride_bookings_endpoint(
    ride_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Booking requests on a ride. Driver only."""
    ride = await ride_service.get_ride(db, ride_id)
    _require_driver(ride, user_id)
    return await booking_service.list_for_ride(db, ride_id)


@router.patch("/{ride_id}/status", response_model=RideResponse)
async def update_ride_status_endpoint(
    ride_id: int,
    status_data: RideStatusUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Start or complete a ride. Completing it rejects any still-pending bookings."""
    ride = await ride_service.get_ride(db, ride_id)
    _require_driver(ride, user_id)

    ride = await ride_service.update_ride_status(
        db, ride_id, RideStatus(status_data.status), booking_service.reject_pending_bookings
    )
    await invalidate_ride_cache()
    return ride


@router.delete("/{ride_id}", response_model=RideDeactivationResponse)
async def deactivate_ride_endpoint(
    ride_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Withdraw a ride. The ride is kept but deactivated, and every pending
    booking is rejected with its seats refunded. Bookings reported in
    failed_booking_ids are still pending; calling this again retries them.
    """
    ride = await ride_service.get_ride(db, ride_id)
    _require_driver(ride, user_id)

    ride, rejected, failed = await ride_service.deactivate_ride(
        db, ride_id, booking_service.reject_pending_bookings
    )
    await invalidate_ride_cache()
    return RideDeactivationResponse(
        ride_id=ride.id,
        is_active=ride.is_active,
        rejected_booking_ids=rejected,
        failed_booking_ids=failed,
    )
