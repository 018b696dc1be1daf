"""
Vehicle registration and edits for drivers.
"""

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from unipool.models.ride import Ride
from unipool.models.vehicle import Vehicle
from unipool.schemas.vehicle import VehicleCreate, VehicleUpdate
from unipool.core.exceptions import NotFound
from unipool.core.logging import get_logger

logger = get_logger(__name__)


async def create_vehicle(db: AsyncSession, vehicle_data: VehicleCreate, owner_id: int) -> Vehicle:
    vehicle = Vehicle(
        owner_id=owner_id,
        model=vehicle_data.model,
        plate=vehicle_data.plate,
        color=vehicle_data.color,
        seats=vehicle_data.seats,
    )
    db.add(vehicle)
    await db.flush()
    await db.refresh(vehicle)

    logger.info("vehicle_registered", vehicle_id=vehicle.id, owner_id=owner_id)
    return vehicle


async def list_vehicles(db: AsyncSession, owner_id: int) -> list[Vehicle]:
    result = await db.execute(
        select(Vehicle).where(Vehicle.owner_id == owner_id).order_by(Vehicle.id)
    )
    return list(result.scalars().all())


async def update_vehicle(
    db: AsyncSession, vehicle_id: int, changes: VehicleUpdate, owner_id: int
) -> Vehicle:
    """
    Edit a vehicle's details. Seats cannot drop below what an active ride
    using this vehicle already offers.
    """
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise NotFound(f"Vehicle {vehicle_id} not found")
    if vehicle.owner_id != owner_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only edit your own vehicles",
        )

    values = changes.model_dump(exclude_unset=True, exclude_none=True)

    if "seats" in values:
        offered = (
            await db.execute(
                select(func.max(Ride.seats_total)).where(
                    Ride.vehicle_id == vehicle_id, Ride.is_active.is_(True)
                )
            )
        ).scalar()
        if offered is not None and values["seats"] < offered:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"An active ride on this vehicle offers {offered} seats",
            )

    for field, value in values.items():
        setattr(vehicle, field, value)
    await db.flush()
    await db.refresh(vehicle)

    logger.info("vehicle_updated", vehicle_id=vehicle_id, fields=sorted(values))
    return vehicle
