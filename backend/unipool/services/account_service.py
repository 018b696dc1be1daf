"""
Self-service account management: profile edits, password change, deletion.

Deleting an account is soft. The user row, its rides and its bookings stay
for history, but everything that holds seats is released first:

  - every active ride the user drives is deactivated, which rejects its
    pending bookings and refunds their seats
  - every pending or accepted booking the user made is cancelled, which
    refunds its seats

All of it happens in the request's transaction. If any ride's cascade
leaves a booking behind, the deletion is refused with 409 and rolled back
as a whole, so an account is never half deleted.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from unipool.models.booking import Booking, BookingStatus, RESERVING_STATUSES
from unipool.models.ride import Ride
from unipool.models.user import User
from unipool.schemas.user import UserUpdate, PasswordChange, AccountDeletionResponse
from unipool.services import booking_service, ride_service
from unipool.services.auth_service import get_user
from unipool.core.exceptions import ConcurrencyConflict
from unipool.core.security import hash_password, verify_password
from unipool.core.logging import get_logger

logger = get_logger(__name__)

# Columns that may be updated but never cleared
_REQUIRED_PROFILE_FIELDS = ("name", "role")


def require_self(user_id: int, actor_id: int) -> None:
    if user_id != actor_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own account",
        )


async def update_profile(db: AsyncSession, user_id: int, changes: UserUpdate) -> User:
    user = await get_user(db, user_id)

    values = changes.model_dump(exclude_unset=True)
    for field in _REQUIRED_PROFILE_FIELDS:
        if field in values and values[field] is None:
            del values[field]

    for field, value in values.items():
        setattr(user, field, value)
    await db.flush()
    await db.refresh(user)

    logger.info("profile_updated", user_id=user_id, fields=sorted(values))
    return user


async def change_password(db: AsyncSession, user_id: int, data: PasswordChange) -> None:
    user = await get_user(db, user_id)
    if not verify_password(data.current_password, user.hashed_password):
        logger.warning("password_change_rejected", user_id=user_id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Incorrect current password",
        )

    user.hashed_password = hash_password(data.new_password)
    await db.flush()
    logger.info("password_changed", user_id=user_id)


async def delete_account(db: AsyncSession, user_id: int) -> AccountDeletionResponse:
    user = await get_user(db, user_id)

    active_rides = (
        await db.execute(
            select(Ride.id)
            .where(Ride.driver_id == user_id, Ride.is_active.is_(True))
            .order_by(Ride.id)
        )
    ).scalars().all()

    rejected: list[int] = []
    for ride_id in active_rides:
        _, ride_rejected, ride_failed = await ride_service.deactivate_ride(
            db, ride_id, booking_service.reject_pending_bookings
        )
        if ride_failed:
            logger.warning("account_deletion_aborted", user_id=user_id, ride_id=ride_id, failed=ride_failed)
            raise ConcurrencyConflict(
                detail="Some bookings on your rides are being changed right now. Please try again."
            )
        rejected.extend(ride_rejected)

    holding = (
        await db.execute(
            select(Booking.id)
            .where(Booking.passenger_id == user_id, Booking.status.in_(RESERVING_STATUSES))
            .order_by(Booking.id)
        )
    ).scalars().all()

    cancelled: list[int] = []
    for booking_id in holding:
        await booking_service.set_status(db, booking_id, BookingStatus.CANCELLED)
        cancelled.append(booking_id)

    user.is_active = False
    await db.flush()

    logger.info(
        "account_deleted",
        user_id=user_id,
        rides_deactivated=len(active_rides),
        bookings_rejected=len(rejected),
        bookings_cancelled=len(cancelled),
    )
    return AccountDeletionResponse(
        user_id=user_id,
        deactivated_ride_ids=list(active_rides),
        rejected_booking_ids=rejected,
        cancelled_booking_ids=cancelled,
    )
