"""
Accounts: sign-up, login and profile lookup.

Emails are stored lower-cased so "Ali@Uni.edu" and "ali@uni.edu" are the
same account.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from unipool.models.user import User
from unipool.schemas.user import UserCreate, UserLogin
from unipool.core.security import hash_password, verify_password, create_access_token
from unipool.core.exceptions import NotFound
from unipool.core.logging import get_logger

logger = get_logger(__name__)


async def _find_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """Create an account. 409 if the email is taken."""
    if await _find_by_email(db, user_data.email):
        logger.warning("registration_rejected", reason="email_taken")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        email=user_data.email.lower(),
        name=user_data.name,
        role=user_data.role,
        phone=user_data.phone,
        hashed_password=hash_password(user_data.password),
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, role=user.role)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """
    Check credentials and issue a bearer token carrying the user id and role.

    Unknown email and wrong password get the same 401 so accounts cannot be
    enumerated; a deactivated account gets 403.
    """
    user = await _find_by_email(db, login_data.email)
    if user is None or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_rejected", reason="bad_credentials")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        logger.warning("login_rejected", reason="inactive", user_id=user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    logger.info("user_logged_in", user_id=user.id)
    return create_access_token(data={"sub": str(user.id), "role": user.role})


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFound(f"User {user_id} not found")
    return user
