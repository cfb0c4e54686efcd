from pydantic import BaseModel


class Created(BaseModel):
    id: int


class Ok(BaseModel):
    ok: bool = True


class ErrorOut(BaseModel):
    error: str
    message: str


class StatsOut(BaseModel):
    activeFleet: int
    maintenanceAlerts: int
    utilizationRate: int
    totalRevenue: float
    totalFuel: float
    totalMaintenance: float
    totalVehicles: int
    availableVehicles: int
    openTrips: int
    driversOnDuty: int
