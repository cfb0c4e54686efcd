from __future__ import annotations

import datetime as dt

from sqlalchemy import Date, Float, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetflow.core.db import Base
from fleetflow.models.driver import Driver
from fleetflow.models.trip import Trip
from fleetflow.models.vehicle import Vehicle


class ExpenseRecord(Base):
    """Running cost of one trip. vehicle_id/driver_id are copied from the trip."""

    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    trip_id: Mapped[int] = mapped_column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    vehicle_id: Mapped[int] = mapped_column(Integer, ForeignKey("vehicles.id"), nullable=False)
    driver_id: Mapped[int] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=False)
    fuel_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    liters: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    distance: Mapped[float] = mapped_column(Float, nullable=False, default=0)  # km
    misc_expense: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    trip: Mapped[Trip] = relationship()
    vehicle: Mapped[Vehicle] = relationship()
    driver: Mapped[Driver] = relationship()
