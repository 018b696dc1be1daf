"""
Booking model representing a passenger's request for seats on a ride.

Key design decisions:
- Seats are reserved when the booking is created (status pending), not when
  the driver accepts it
- Status is never deleted, only moved along the transition table in
  unipool.services.booking_service
- seats_booked allows multi-seat bookings in one request
"""

import enum

from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from unipool.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# States whose seats are held out of ride.seats_available
RESERVING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.ACCEPTED.value)


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False, index=True)
    passenger_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    seats_booked = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)

    # Relationships
    ride = relationship("Ride", back_populates="bookings")
    passenger = relationship("User", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("seats_booked > 0", name="check_booking_seats_positive"),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'cancelled')",
            name="check_booking_status",
        ),
        # Conservation check and cascade both filter by ride and status
        Index("ix_bookings_ride_status", "ride_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, ride={self.ride_id}, passenger={self.passenger_id}, "
            f"seats={self.seats_booked}, status={self.status})>"
        )
