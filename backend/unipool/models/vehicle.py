from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from unipool.db.base import Base, TimestampMixin


class Vehicle(Base, TimestampMixin):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    model = Column(String(100), nullable=False)
    plate = Column(String(20), nullable=False)
    color = Column(String(30), nullable=False)
    seats = Column(Integer, nullable=False, default=4)

    owner = relationship("User", back_populates="vehicles")

    __table_args__ = (
        CheckConstraint("seats > 0", name="check_vehicle_seats_positive"),
    )

    def __repr__(self) -> str:
        return f"<Vehicle(id={self.id}, plate={self.plate}, seats={self.seats})>"
