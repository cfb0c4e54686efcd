from __future__ import annotations

from datetime import date
from enum import Enum

from sqlalchemy import CheckConstraint, Date, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fleetflow.core.db import Base


class DriverStatus(str, Enum):
    ON_DUTY = "On Duty"
    AVAILABLE = "Available"
    ON_TRIP = "On Trip"
    OFF_DUTY = "Off Duty"
    SUSPENDED = "Suspended"


# Statuses a trip can be dispatched from
DISPATCHABLE_DRIVER_STATUSES = frozenset({DriverStatus.ON_DUTY.value, DriverStatus.AVAILABLE.value})

# Statuses reachable through the administrative override
ADMIN_DRIVER_STATUSES = frozenset({
    DriverStatus.ON_DUTY.value,
    DriverStatus.AVAILABLE.value,
    DriverStatus.OFF_DUTY.value,
    DriverStatus.SUSPENDED.value,
})


class Driver(Base):
    __tablename__ = "drivers"
    __table_args__ = (
        CheckConstraint("safety_score >= 0 AND safety_score <= 100", name="ck_drivers_safety_score_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    license_no: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    license_expiry: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=DriverStatus.ON_DUTY.value,
        index=True
    )
    safety_score: Mapped[float] = mapped_column(Float, nullable=False, default=100)
    total_trips: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_trips: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
