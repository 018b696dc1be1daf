"""
Ride catalog: ride storage and the seat counter.

CONCURRENCY STRATEGY: Compare-and-swap on the ride row
=====================================================

Problem:
  Two passengers request the last seat simultaneously.
  Both read seats_available=1, both decrement, both succeed.
  Result: Oversold ride.

Solution:
  Every seat write goes through a conditional UPDATE keyed on the `version`
  column that was read:

    UPDATE rides SET seats_available = :new, version = version + 1
    WHERE id = :ride_id AND version = :read_version

  Reservations add `AND seats_available >= :n AND is_active` so the check
  and the decrement are one statement. rowcount == 0 means another writer
  got there first: re-read and retry, up to BOOKING_MAX_RETRY_ATTEMPTS.
  The DB CHECK constraints (0 <= seats_available <= seats_total) are the
  final safety net.

  No session rollback on conflict: the caller may already have written a
  booking status in the same transaction, and that write must survive the
  retry. Stale ORM state is discarded with populate_existing instead.
"""

from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from unipool.models.ride import Ride, RideStatus, RIDE_TRANSITIONS
from unipool.models.vehicle import Vehicle
from unipool.schemas.ride import RideCreate
from unipool.core.config import get_settings
from unipool.core.exceptions import (
    NotFound, InsufficientSeats, RideUnavailable, InvalidTransition, ConcurrencyConflict,
)
from unipool.core.logging import get_logger
from unipool.core.metrics import record_db_operation, seat_clamps

logger = get_logger(__name__)
settings = get_settings()

MAX_RETRY_ATTEMPTS = settings.BOOKING_MAX_RETRY_ATTEMPTS

# Invoked by deactivate_ride with the ride id; returns (rejected_ids, failed_ids)
CascadeHandler = Callable[[AsyncSession, int], Awaitable[tuple[list[int], list[int]]]]


async def create_ride(db: AsyncSession, ride_data: RideCreate, driver_id: int) -> Ride:
    """Create a new ride with every seat available."""
    if ride_data.seats_total < 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A ride needs at least one seat",
        )

    if ride_data.departure_time <= datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Departure time must be in the future",
        )

    if ride_data.vehicle_id is not None:
        vehicle = await db.get(Vehicle, ride_data.vehicle_id)
        if not vehicle or vehicle.owner_id != driver_id:
            raise NotFound(f"Vehicle {ride_data.vehicle_id} not found")
        if ride_data.seats_total > vehicle.seats:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Vehicle only has {vehicle.seats} seats",
            )

    ride = Ride(
        driver_id=driver_id,
        vehicle_id=ride_data.vehicle_id,
        source_lat=ride_data.source_lat,
        source_lng=ride_data.source_lng,
        source_address=ride_data.source_address,
        dest_lat=ride_data.dest_lat,
        dest_lng=ride_data.dest_lng,
        dest_address=ride_data.dest_address,
        departure_time=ride_data.departure_time,
        seats_total=ride_data.seats_total,
        seats_available=ride_data.seats_total,  # All seats available initially
        cost_per_seat=ride_data.cost_per_seat,
        is_active=True,
        status=RideStatus.SCHEDULED.value,
    )
    db.add(ride)
    await db.flush()
    await db.refresh(ride)

    logger.info("ride_created", ride_id=ride.id, driver_id=driver_id, seats=ride.seats_total)
    return ride


async def get_ride(db: AsyncSession, ride_id: int) -> Ride:
    """Get a ride, always reloading it from the database."""
    result = await db.execute(
        select(Ride).where(Ride.id == ride_id).execution_options(populate_existing=True)
    )
    ride = result.scalar_one_or_none()
    record_db_operation("read")

    if not ride:
        raise NotFound(f"Ride {ride_id} not found")
    return ride


async def get_seats_available(db: AsyncSession, ride_id: int) -> int:
    ride = await get_ride(db, ride_id)
    return ride.seats_available


async def _compare_and_set(db: AsyncSession, ride: Ride, *conditions, **values) -> bool:
    """Apply values to the ride row only if nobody wrote it since `ride` was read."""
    result = await db.execute(
        update(Ride)
        .where(Ride.id == ride.id, Ride.version == ride.version, *conditions)
        .values(version=Ride.version + 1, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        record_db_operation("retry")
        return False
    record_db_operation("write")
    return True


async def reserve_seats(db: AsyncSession, ride_id: int, seats: int) -> Ride:
    """
    Take `seats` out of the ride's availability, or fail.

    Unlike adjust_seats this never clamps: asking for more than is available
    raises InsufficientSeats and leaves the counter untouched.
    """
    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        ride = await get_ride(db, ride_id)

        if not ride.is_active:
            raise RideUnavailable(ride_id)

        if ride.seats_available < seats:
            logger.warning(
                "reservation_failed_no_seats",
                ride_id=ride_id,
                requested=seats,
                available=ride.seats_available,
            )
            raise InsufficientSeats(requested=seats, available=ride.seats_available)

        applied = await _compare_and_set(
            db,
            ride,
            Ride.seats_available >= seats,
            Ride.is_active.is_(True),
            seats_available=Ride.seats_available - seats,
        )
        if applied:
            await db.refresh(ride)
            return ride

        logger.info("reservation_retry", ride_id=ride_id, attempt=attempt, reason="version_conflict")

    raise ConcurrencyConflict()


async def adjust_seats(db: AsyncSession, ride_id: int, delta: int) -> Ride:
    """
    Apply seats_available += delta, clamped into [0, seats_total].

    The booking engine is responsible for passing correct deltas. A clamp
    means its accounting is off somewhere; it is logged as an error and the
    engine's conservation check will reject the transaction.
    """
    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        ride = await get_ride(db, ride_id)

        target = ride.seats_available + delta
        clamped = min(max(target, 0), ride.seats_total)
        if clamped != target:
            seat_clamps.inc()
            logger.error(
                "seat_adjustment_clamped",
                ride_id=ride_id,
                delta=delta,
                seats_available=ride.seats_available,
                seats_total=ride.seats_total,
                clamped_to=clamped,
            )

        if await _compare_and_set(db, ride, seats_available=clamped):
            await db.refresh(ride)
            logger.debug("seats_adjusted", ride_id=ride_id, delta=delta, seats_available=clamped)
            return ride

        logger.info("seat_adjustment_retry", ride_id=ride_id, attempt=attempt)

    raise ConcurrencyConflict()


async def deactivate_ride(
    db: AsyncSession,
    ride_id: int,
    cascade: CascadeHandler,
) -> tuple[Ride, list[int], list[int]]:
    """
    Mark a ride inactive and reject its pending bookings.

    The ride row is kept. Deactivating an already inactive ride re-runs the
    cascade, which is how bookings left pending by an earlier partial
    failure get swept.
    """
    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        ride = await get_ride(db, ride_id)
        if not ride.is_active:
            logger.info("ride_already_inactive", ride_id=ride_id)
            break
        if await _compare_and_set(db, ride, is_active=False):
            break
        logger.info("deactivation_retry", ride_id=ride_id, attempt=attempt)
    else:
        raise ConcurrencyConflict()

    rejected, failed = await cascade(db, ride_id)
    ride = await get_ride(db, ride_id)

    logger.info(
        "ride_deactivated",
        ride_id=ride_id,
        rejected=len(rejected),
        failed=len(failed),
        seats_available=ride.seats_available,
    )
    return ride, rejected, failed


async def update_ride_status(
    db: AsyncSession,
    ride_id: int,
    new_status: RideStatus,
    cascade: CascadeHandler,
) -> Ride:
    """
    Move a ride along scheduled -> ongoing -> completed. Completion deactivates it.

    A deactivated ride can only be completed; it cannot start.
    """
    ride = await get_ride(db, ride_id)
    current = RideStatus(ride.status)

    if new_status not in RIDE_TRANSITIONS[current]:
        raise InvalidTransition(current.value, new_status.value, entity="ride")
    if not ride.is_active and new_status != RideStatus.COMPLETED:
        raise RideUnavailable(ride_id)

    if not await _compare_and_set(db, ride, Ride.status == current.value, status=new_status.value):
        raise ConcurrencyConflict()

    logger.info("ride_status_changed", ride_id=ride_id, from_status=current.value, to_status=new_status.value)

    if new_status == RideStatus.COMPLETED:
        ride, _, _ = await deactivate_ride(db, ride_id, cascade)
        return ride
    return await get_ride(db, ride_id)


async def list_rides(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    source: Optional[str] = None,
    destination: Optional[str] = None,
    min_seats: int = 1,
    upcoming_only: bool = True,
) -> tuple[list[Ride], int]:
    """
    Search active rides, soonest departure first.
    Uses the ix_rides_active_departure index for the base filter.
    """
    query = select(Ride).where(Ride.is_active.is_(True), Ride.seats_available >= min_seats)

    if upcoming_only:
        query = query.where(Ride.departure_time >= datetime.now(timezone.utc))
    if source:
        query = query.where(Ride.source_address.ilike(f"%{source}%"))
    if destination:
        query = query.where(Ride.dest_address.ilike(f"%{destination}%"))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    rides_query = (
        query
        .order_by(Ride.departure_time.asc(), Ride.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(rides_query)
    return list(result.scalars().all()), total


async def list_rides_for_driver(db: AsyncSession, driver_id: int) -> list[Ride]:
    """All rides offered by a driver, including inactive ones."""
    result = await db.execute(
        select(Ride)
        .where(Ride.driver_id == driver_id)
        .order_by(Ride.departure_time.desc(), Ride.id.desc())
    )
    return list(result.scalars().all())
