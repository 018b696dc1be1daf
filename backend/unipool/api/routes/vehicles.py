"""
Vehicle endpoints for drivers.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from unipool.db.session import get_db
from unipool.schemas.vehicle import VehicleCreate, VehicleResponse, VehicleUpdate
from unipool.services.vehicle_service import create_vehicle, list_vehicles, update_vehicle
from unipool.core.security import get_current_user_id

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@router.post("/", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def register_vehicle(
    vehicle_data: VehicleCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await create_vehicle(db, vehicle_data, user_id)


@router.get("/", response_model=list[VehicleResponse])
async def list_my_vehicles(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await list_vehicles(db, user_id)


@router.patch("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle_endpoint(
    vehicle_id: int,
    changes: VehicleUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Edit model, plate, color or seats of one of your vehicles."""
    return await update_vehicle(db, vehicle_id, changes, user_id)
