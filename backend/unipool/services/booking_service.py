"""
Booking engine: the booking state machine and its seat effects.

RESERVE ON REQUEST
==================

Seats are taken from the ride when a booking is requested (status pending),
not when the driver accepts it. A pending request therefore cannot be
starved by other requests that would exceed capacity. The price is that
every transition that releases a booking must refund exactly once:

  (create)  -> pending     reserve seats_booked
  pending   -> accepted    no seat change (already reserved)
  pending   -> rejected    refund seats_booked
  pending   -> cancelled   refund seats_booked
  accepted  -> cancelled   refund seats_booked

Anything else raises InvalidTransition and touches nothing.

Seat conservation, checked after every write:

  ride.seats_available + sum(seats_booked of pending/accepted bookings)
      == ride.seats_total

ATOMICITY
=========

The status write is a compare-and-swap on the booking's current status, and
the seat write is a compare-and-swap on the ride's version (see
ride_service). Both happen in the caller's session, i.e. in the request's
transaction, so if the seat write or the conservation check fails the status
write is rolled back with it.
"""

import time

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from unipool.models.booking import Booking, BookingStatus, RESERVING_STATUSES
from unipool.models.ride import Ride
from unipool.services import ride_service
from unipool.core.exceptions import (
    NotFound, InsufficientSeats, RideUnavailable, InvalidTransition,
    ConcurrencyConflict, StatusConflict, InvariantViolation,
)
from unipool.core.logging import get_logger
from unipool.core.metrics import (
    booking_latency, invariant_violations, record_booking_attempt, record_cascade,
    record_db_operation, record_transition,
)

logger = get_logger(__name__)

MAX_RETRY_ATTEMPTS = ride_service.MAX_RETRY_ATTEMPTS

# current status -> {allowed target: refunds seats?}
BOOKING_TRANSITIONS: dict[BookingStatus, dict[BookingStatus, bool]] = {
    BookingStatus.PENDING: {
        BookingStatus.ACCEPTED: False,
        BookingStatus.REJECTED: True,
        BookingStatus.CANCELLED: True,
    },
    BookingStatus.ACCEPTED: {
        BookingStatus.CANCELLED: True,
    },
    BookingStatus.REJECTED: {},
    BookingStatus.CANCELLED: {},
}


def resolve_transition(current: BookingStatus, target: BookingStatus) -> bool:
    """Return whether current -> target refunds seats; raise if it is not allowed."""
    allowed = BOOKING_TRANSITIONS[current]
    if target not in allowed:
        raise InvalidTransition(current.value, target.value)
    return allowed[target]


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    record_db_operation("read")

    if not booking:
        raise NotFound(f"Booking {booking_id} not found")
    return booking


async def verify_seat_conservation(db: AsyncSession, ride_id: int) -> None:
    """Raise InvariantViolation unless available + reserved == total for the ride."""
    ride = await ride_service.get_ride(db, ride_id)
    reserved = (
        await db.execute(
            select(func.coalesce(func.sum(Booking.seats_booked), 0)).where(
                Booking.ride_id == ride_id,
                Booking.status.in_(RESERVING_STATUSES),
            )
        )
    ).scalar()

    if ride.seats_available + reserved != ride.seats_total:
        invariant_violations.inc()
        logger.error(
            "seat_invariant_violation",
            ride_id=ride_id,
            seats_available=ride.seats_available,
            seats_reserved=reserved,
            seats_total=ride.seats_total,
        )
        raise InvariantViolation(
            ride_id,
            f"available ({ride.seats_available}) + reserved ({reserved}) "
            f"!= total ({ride.seats_total})",
        )


async def request_booking(
    db: AsyncSession,
    ride_id: int,
    passenger_id: int,
    seats_booked: int = 1,
) -> Booking:
    """
    Create a pending booking and reserve its seats in the same unit of work.
    """
    if seats_booked < 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one seat must be booked",
        )

    start = time.perf_counter()
    try:
        await ride_service.reserve_seats(db, ride_id, seats_booked)
    except InsufficientSeats:
        record_booking_attempt("insufficient_seats")
        raise
    except RideUnavailable:
        record_booking_attempt("unavailable")
        raise
    except ConcurrencyConflict:
        record_booking_attempt("conflict")
        raise

    booking = Booking(
        ride_id=ride_id,
        passenger_id=passenger_id,
        seats_booked=seats_booked,
        status=BookingStatus.PENDING.value,
    )
    db.add(booking)
    await db.flush()
    await db.refresh(booking)

    await verify_seat_conservation(db, ride_id)

    booking_latency.observe(time.perf_counter() - start)
    record_booking_attempt("success")
    logger.info(
        "booking_requested",
        booking_id=booking.id,
        ride_id=ride_id,
        passenger_id=passenger_id,
        seats=seats_booked,
    )
    return booking


async def set_status(db: AsyncSession, booking_id: int, new_status: BookingStatus) -> Booking:
    """
    Move a booking to new_status and apply the matching seat effect.

    Either the transition and its seat effect are both applied, or
    InvalidTransition / StatusConflict is raised and nothing is written.
    A ConcurrencyConflict from the refund comes after the status write;
    the caller's transaction must be rolled back.
    """
    new_status = BookingStatus(new_status)

    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        booking = await get_booking(db, booking_id)
        current = BookingStatus(booking.status)
        refunds = resolve_transition(current, new_status)

        result = await db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == current.value)
            .values(status=new_status.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Someone else moved this booking; re-read and re-validate
            record_db_operation("retry")
            logger.info("booking_status_retry", booking_id=booking_id, attempt=attempt)
            continue
        record_db_operation("write")

        if refunds:
            await ride_service.adjust_seats(db, booking.ride_id, booking.seats_booked)

        await verify_seat_conservation(db, booking.ride_id)
        await db.refresh(booking)

        record_transition(current.value, new_status.value)
        logger.info(
            "booking_status_changed",
            booking_id=booking_id,
            ride_id=booking.ride_id,
            from_status=current.value,
            to_status=new_status.value,
            seats_refunded=booking.seats_booked if refunds else 0,
        )
        return booking

    raise StatusConflict(booking_id)


async def reject_pending_bookings(db: AsyncSession, ride_id: int) -> tuple[list[int], list[int]]:
    """
    Reject every pending booking on a ride, refunding each one's seats.

    Returns (rejected_ids, failed_ids). A booking that stopped being pending
    in the meantime is skipped. One that keeps losing the status race is
    reported as failed and left for the next sweep: StatusConflict is only
    raised before its status write, so nothing of it is in the session.
    Anything else, including a refund that cannot be applied after the
    status write, propagates so the whole transaction rolls back.
    """
    result = await db.execute(
        select(Booking.id)
        .where(Booking.ride_id == ride_id, Booking.status == BookingStatus.PENDING.value)
        .order_by(Booking.id)
    )
    pending_ids = list(result.scalars().all())

    rejected: list[int] = []
    failed: list[int] = []
    for booking_id in pending_ids:
        try:
            await set_status(db, booking_id, BookingStatus.REJECTED)
        except InvalidTransition as exc:
            record_cascade("skipped")
            logger.info("cascade_rejection_skipped", ride_id=ride_id, booking_id=booking_id, current=exc.current)
            continue
        except StatusConflict:
            record_cascade("failed")
            failed.append(booking_id)
            continue
        record_cascade("rejected")
        rejected.append(booking_id)

    if failed:
        logger.warning(
            "cascade_rejection_partial",
            ride_id=ride_id,
            rejected=rejected,
            failed=failed,
        )

    await verify_seat_conservation(db, ride_id)
    return rejected, failed


async def authorize_status_change(
    db: AsyncSession,
    booking: Booking,
    actor_id: int,
    new_status: BookingStatus,
) -> None:
    """Drivers accept or reject; passengers cancel."""
    if new_status == BookingStatus.CANCELLED:
        if booking.passenger_id != actor_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the passenger can cancel this booking",
            )
        return

    ride = await db.get(Ride, booking.ride_id)
    if ride is None or ride.driver_id != actor_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the ride's driver can accept or reject bookings",
        )


async def list_for_ride(db: AsyncSession, ride_id: int) -> list[Booking]:
    """All bookings on a ride, newest first. Read-only."""
    result = await db.execute(
        select(Booking)
        .where(Booking.ride_id == ride_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def list_for_passenger(db: AsyncSession, passenger_id: int) -> list[Booking]:
    """All bookings made by a passenger, newest first. Read-only."""
    result = await db.execute(
        select(Booking)
        .where(Booking.passenger_id == passenger_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())
