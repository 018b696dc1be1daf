"""
User model. A user can act as a passenger, a driver, or both.
"""

from sqlalchemy import Column, Integer, String, Boolean, CheckConstraint
from sqlalchemy.orm import relationship

from unipool.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="passenger")  # passenger, driver, both
    phone = Column(String(30), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    vehicles = relationship("Vehicle", back_populates="owner", lazy="selectin")
    rides = relationship("Ride", back_populates="driver")
    bookings = relationship("Booking", back_populates="passenger")

    __table_args__ = (
        CheckConstraint("role IN ('passenger', 'driver', 'both')", name="check_user_role"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
