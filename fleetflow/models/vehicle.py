from __future__ import annotations

from enum import Enum

from sqlalchemy import CheckConstraint, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fleetflow.core.db import Base


class VehicleStatus(str, Enum):
    AVAILABLE = "Available"
    ON_TRIP = "On Trip"
    IN_SHOP = "In Shop"


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (
        CheckConstraint("max_payload > 0", name="ck_vehicles_max_payload_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    license_plate: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)  # Truck | Van | Trailer | Container
    max_payload: Mapped[float] = mapped_column(Float, nullable=False)  # kg
    odometer: Mapped[float] = mapped_column(Float, nullable=False, default=0)  # km
    acquisition_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=VehicleStatus.AVAILABLE.value,
        index=True
    )
