"""
Domain errors raised by the ride catalog and booking engine.

They subclass HTTPException so services can raise them directly and FastAPI
renders them with the right status code. None of them are retried: they are
caller errors or defects, not transient failures.
"""

from fastapi import HTTPException, status


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InsufficientSeats(HTTPException):
    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Not enough seats. Requested: {requested}, Available: {available}",
        )


class RideUnavailable(HTTPException):
    def __init__(self, ride_id: int):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Ride {ride_id} is no longer accepting bookings",
        )


class InvalidTransition(HTTPException):
    def __init__(self, current: str, target: str, entity: str = "booking"):
        self.current = current
        self.target = target
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {entity} transition: {current} -> {target}",
        )


class ConcurrencyConflict(HTTPException):
    def __init__(self, detail: str = "Request failed due to high demand. Please try again."):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InvariantViolation(HTTPException):
    """Seat conservation broken. Always a bug; the transaction is rolled back."""

    def __init__(self, ride_id: int, detail: str):
        self.ride_id = ride_id
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Seat accounting error on ride {ride_id}: {detail}",
        )


class StatusConflict(ConcurrencyConflict):
    """A booking's status kept changing under us; nothing was written for it."""

    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__(detail=f"Booking {booking_id} is being changed by another request. Please try again.")
