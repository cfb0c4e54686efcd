from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from fleetflow.models.vehicle import VehicleStatus


class VehicleCreate(BaseModel):
    name: str = Field(..., min_length=1)
    license_plate: str = Field(..., min_length=1, max_length=32)
    type: str = Field(..., min_length=1)  # Truck | Van | Trailer | Container
    max_payload: float = Field(..., gt=0, description="Max payload in kg")
    odometer: float = Field(0, ge=0, description="Odometer in km")
    acquisition_cost: float = Field(0, ge=0)


class VehicleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    license_plate: str
    type: str
    max_payload: float
    odometer: float
    acquisition_cost: float
    status: str


VehicleStatusFilter = Optional[Literal[
    VehicleStatus.AVAILABLE.value,
    VehicleStatus.ON_TRIP.value,
    VehicleStatus.IN_SHOP.value,
]]
