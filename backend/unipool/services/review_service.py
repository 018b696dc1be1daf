"""
Reviews between riders and the driver dashboard statistics built on them.
"""

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from unipool.models.booking import Booking, BookingStatus
from unipool.models.review import Review
from unipool.models.ride import Ride
from unipool.models.user import User
from unipool.schemas.review import ReviewCreate, DriverStats
from unipool.core.exceptions import NotFound
from unipool.core.logging import get_logger

logger = get_logger(__name__)


async def create_review(db: AsyncSession, review_data: ReviewCreate, reviewer_id: int) -> Review:
    if review_data.reviewee_id == reviewer_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot review yourself",
        )
    if not await db.get(Ride, review_data.ride_id):
        raise NotFound(f"Ride {review_data.ride_id} not found")
    if not await db.get(User, review_data.reviewee_id):
        raise NotFound(f"User {review_data.reviewee_id} not found")

    review = Review(
        ride_id=review_data.ride_id,
        reviewer_id=reviewer_id,
        reviewee_id=review_data.reviewee_id,
        rating=review_data.rating,
        comment=review_data.comment,
    )
    db.add(review)
    await db.flush()
    await db.refresh(review)

    logger.info("review_created", review_id=review.id, reviewee_id=review.reviewee_id, rating=review.rating)
    return review


async def get_reviews_for_user(db: AsyncSession, user_id: int) -> list[Review]:
    result = await db.execute(
        select(Review)
        .where(Review.reviewee_id == user_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
    )
    return list(result.scalars().all())


async def get_average_rating(db: AsyncSession, user_id: int) -> float:
    """Mean rating rounded to one decimal; 0 when nobody has rated the user."""
    average = (
        await db.execute(select(func.avg(Review.rating)).where(Review.reviewee_id == user_id))
    ).scalar()
    if average is None:
        return 0.0
    return round(float(average), 1)


async def get_driver_stats(db: AsyncSession, driver_id: int) -> DriverStats:
    """
    Earnings count accepted bookings only: pending ones may still be rejected
    and cancelled ones were refunded.
    """
    total_rides = (
        await db.execute(select(func.count(Ride.id)).where(Ride.driver_id == driver_id))
    ).scalar()
    active_rides = (
        await db.execute(
            select(func.count(Ride.id)).where(Ride.driver_id == driver_id, Ride.is_active.is_(True))
        )
    ).scalar()

    bookings_row = (
        await db.execute(
            select(
                func.count(Booking.id),
                func.coalesce(func.sum(Booking.seats_booked * Ride.cost_per_seat), 0),
            )
            .join(Ride, Booking.ride_id == Ride.id)
            .where(Ride.driver_id == driver_id, Booking.status == BookingStatus.ACCEPTED.value)
        )
    ).one()

    return DriverStats(
        total_rides=total_rides,
        active_rides=active_rides,
        total_bookings=bookings_row[0],
        total_earnings=int(bookings_row[1]),
        average_rating=await get_average_rating(db, driver_id),
    )
