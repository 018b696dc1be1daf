"""
Ride model with seat inventory tracking.

Key design decisions:
- `seats_available` is denormalized (avoids summing bookings on every read);
  the booking engine keeps it equal to seats_total minus reserved seats
- `version` column enables compare-and-swap on every seat write
- Rides are never hard-deleted: deactivation flips `is_active` so bookings
  keep a valid ride reference
- Composite index on (is_active, departure_time) serves the ride search listing
"""

import enum

from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Index, CheckConstraint,
)
from sqlalchemy.orm import relationship

from unipool.db.base import Base, TimestampMixin


class RideStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"


RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.SCHEDULED: {RideStatus.ONGOING, RideStatus.COMPLETED},
    RideStatus.ONGOING: {RideStatus.COMPLETED},
    RideStatus.COMPLETED: set(),
}


class Ride(Base, TimestampMixin):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, index=True)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True)

    source_lat = Column(Float, nullable=False)
    source_lng = Column(Float, nullable=False)
    source_address = Column(String(255), nullable=False)
    dest_lat = Column(Float, nullable=False)
    dest_lng = Column(Float, nullable=False)
    dest_address = Column(String(255), nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False)

    seats_total = Column(Integer, nullable=False)
    seats_available = Column(Integer, nullable=False)
    cost_per_seat = Column(Integer, nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)
    status = Column(String(20), nullable=False, default=RideStatus.SCHEDULED.value)

    # Compare-and-swap version counter
    version = Column(Integer, nullable=False, default=1)

    # Relationships
    driver = relationship("User", back_populates="rides")
    vehicle = relationship("Vehicle")
    bookings = relationship("Booking", back_populates="ride")

    __table_args__ = (
        CheckConstraint("seats_total > 0", name="check_ride_seats_total_positive"),
        CheckConstraint("seats_available >= 0", name="check_ride_seats_available_non_negative"),
        CheckConstraint("seats_available <= seats_total", name="check_ride_available_lte_total"),
        CheckConstraint("cost_per_seat > 0", name="check_ride_cost_positive"),
        CheckConstraint(
            "status IN ('scheduled', 'ongoing', 'completed')", name="check_ride_status"
        ),
        Index("ix_rides_active_departure", "is_active", "departure_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<Ride(id={self.id}, driver={self.driver_id}, "
            f"available={self.seats_available}/{self.seats_total}, active={self.is_active})>"
        )
