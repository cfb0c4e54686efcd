from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class ExpenseCreate(BaseModel):
    trip_id: int = Field(..., gt=0)
    fuel_cost: float = Field(0, ge=0)
    liters: float = Field(0, ge=0)
    distance: float = Field(0, ge=0, description="Distance in km")
    misc_expense: float = Field(0, ge=0)
    date: date


class ExpenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    trip_id: int
    vehicle_id: int
    driver_id: int
    vehicle_name: str
    driver_name: str
    fuel_cost: float
    liters: float
    distance: float
    misc_expense: float
    date: date
