"""
Campus account sign-up and token login. Every other UniPool endpoint that
changes state expects the bearer token issued here.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from unipool.db.session import get_db
from unipool.schemas.user import UserCreate, UserResponse, UserLogin, Token
from unipool.services.auth_service import register_user, authenticate_user

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new passenger and/or driver account."""
    user = await register_user(db, user_data)
    return user


@router.post("/login", response_model=Token)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Exchange email and password for a bearer token carrying the user id and role."""
    token = await authenticate_user(db, login_data)
    return Token(access_token=token)
