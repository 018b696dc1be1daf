"""
UniPool's /api/v1 surface: accounts, vehicles, the ride catalog, bookings
and reviews.
"""

from fastapi import APIRouter
from unipool.api.routes import auth, users, vehicles, rides, bookings, reviews

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(vehicles.router)
api_router.include_router(rides.router)
api_router.include_router(bookings.router)
api_router.include_router(reviews.router)
