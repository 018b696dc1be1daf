"""
Public user profiles, reviews received, and driver statistics, plus the
owner-only account endpoints: edit profile, change password, delete.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from unipool.db.session import get_db
from unipool.schemas.user import UserResponse, UserUpdate, PasswordChange, AccountDeletionResponse
from unipool.schemas.review import ReviewResponse, DriverStats
from unipool.services import account_service
from unipool.services.auth_service import get_user
from unipool.services.cache_service import invalidate_ride_cache
from unipool.services.review_service import get_reviews_for_user, get_driver_stats
from unipool.core.security import get_current_user_id

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_profile(user_id: int, db: AsyncSession = Depends(get_db)):
    return await get_user(db, user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user_profile(
    user_id: int,
    changes: UserUpdate,
    actor_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Change your name, role or phone number."""
    account_service.require_self(user_id, actor_id)
    return await account_service.update_profile(db, user_id, changes)


@router.post("/{user_id}/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    user_id: int,
    data: PasswordChange,
    actor_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Replace your password; the current one must be supplied. 400 if it is wrong."""
    account_service.require_self(user_id, actor_id)
    await account_service.change_password(db, user_id, data)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{user_id}", response_model=AccountDeletionResponse)
async def delete_account(
    user_id: int,
    actor_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Close your account.

    Your active rides are deactivated (their pending bookings rejected) and
    your own pending or accepted bookings are cancelled, all seats refunded.
    Afterwards your tokens stop working and you cannot log in.
    """
    account_service.require_self(user_id, actor_id)
    result = await account_service.delete_account(db, user_id)
    await invalidate_ride_cache()
    return result


@router.get("/{user_id}/reviews", response_model=list[ReviewResponse])
async def list_user_reviews(user_id: int, db: AsyncSession = Depends(get_db)):
    """Reviews written about a user, newest first."""
    await get_user(db, user_id)
    return await get_reviews_for_user(db, user_id)


@router.get("/{user_id}/stats", response_model=DriverStats)
async def driver_stats(user_id: int, db: AsyncSession = Depends(get_db)):
    """Ride counts, accepted bookings, earnings and average rating for a driver."""
    await get_user(db, user_id)
    return await get_driver_stats(db, user_id)
