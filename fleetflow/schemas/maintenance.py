from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MaintenanceCreate(BaseModel):
    vehicle_id: int = Field(..., gt=0)
    issue: str = Field(..., min_length=1)
    date: date
    cost: float = Field(0, ge=0)


class MaintenanceCreated(BaseModel):
    maintenance_id: int


class MaintenanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vehicle_id: int
    vehicle_name: str
    issue: str
    date: date
    cost: float
    status: str
    resolved_at: Optional[datetime] = None
