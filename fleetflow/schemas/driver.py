from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from fleetflow.models.driver import DriverStatus


class DriverCreate(BaseModel):
    name: str = Field(..., min_length=1)
    license_no: str = Field(..., min_length=1, max_length=32)
    license_expiry: date = Field(..., description="Last day the license is valid")
    safety_score: float = Field(100, ge=0, le=100)


class DriverOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    license_no: str
    license_expiry: date
    status: str
    safety_score: float
    total_trips: int
    completed_trips: int


class DriverStatusUpdate(BaseModel):
    # On Trip is only ever set by a dispatch
    status: Literal[
        DriverStatus.ON_DUTY.value,
        DriverStatus.AVAILABLE.value,
        DriverStatus.OFF_DUTY.value,
        DriverStatus.SUSPENDED.value,
    ]


DriverStatusFilter = Optional[Literal[
    DriverStatus.ON_DUTY.value,
    DriverStatus.AVAILABLE.value,
    DriverStatus.ON_TRIP.value,
    DriverStatus.OFF_DUTY.value,
    DriverStatus.SUSPENDED.value,
]]
