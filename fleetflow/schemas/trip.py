from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DispatchRequest(BaseModel):
    vehicle_id: int = Field(..., gt=0)
    driver_id: int = Field(..., gt=0)
    origin: str = Field(..., min_length=1, max_length=200)
    destination: str = Field(..., min_length=1, max_length=200)
    cargo_weight: float = Field(..., ge=0, description="Cargo weight in kg")
    revenue: float = Field(0, ge=0)

    @field_validator('origin', 'destination')
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError('must not be blank')
        return v.strip()


class CompleteRequest(BaseModel):
    odometer: float = Field(..., ge=0, description="Final odometer reading in km")


class TripCreated(BaseModel):
    trip_id: int


class TripOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vehicle_id: int
    driver_id: int
    origin: str
    destination: str
    cargo_weight: float
    revenue: float
    status: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class TripListItem(TripOut):
    vehicle_name: str
    max_payload: float
    driver_name: str
