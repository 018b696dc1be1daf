"""
Review endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from unipool.db.session import get_db
from unipool.schemas.review import ReviewCreate, ReviewResponse
from unipool.services.review_service import create_review
from unipool.core.security import get_current_user_id

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("/", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review_endpoint(
    review_data: ReviewCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Rate another user (1-5) for a ride you shared."""
    return await create_review(db, review_data, user_id)
