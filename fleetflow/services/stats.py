import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.metrics import track_performance
from fleetflow.models import (
    Driver,
    DriverStatus,
    ExpenseRecord,
    MaintenanceLog,
    Trip,
    TripStatus,
    Vehicle,
    VehicleStatus,
)
from fleetflow.services.store import atomic

logger = logging.getLogger(__name__)


def utilization_rate(on_trip: int, total: int) -> int:
    """Percentage of the fleet on a trip, rounded half up; 0 for an empty fleet."""
    if total <= 0:
        return 0
    ratio = Decimal(on_trip) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StatsAggregator:
    """
    Fleet dashboard counters. Recomputed from current entity state on every
    call, inside one read transaction so the numbers agree with each other.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @track_performance(service_name="StatsAggregator")
    async def snapshot(self) -> Dict[str, Any]:
        async with atomic(self.db):
            vehicles_by_status = dict(
                (await self.db.execute(
                    select(Vehicle.status, func.count(Vehicle.id)).group_by(Vehicle.status)
                )).all()
            )
            total_revenue = await self._scalar(
                select(func.coalesce(func.sum(Trip.revenue), 0)).where(
                    Trip.status == TripStatus.COMPLETED.value
                )
            )
            open_trips = await self._scalar(
                select(func.count(Trip.id)).where(Trip.status == TripStatus.DISPATCHED.value)
            )
            total_fuel = await self._scalar(select(func.coalesce(func.sum(ExpenseRecord.fuel_cost), 0)))
            total_maintenance = await self._scalar(select(func.coalesce(func.sum(MaintenanceLog.cost), 0)))
            drivers_on_duty = await self._scalar(
                select(func.count(Driver.id)).where(
                    Driver.status.in_([DriverStatus.ON_DUTY.value, DriverStatus.AVAILABLE.value])
                )
            )

        total_vehicles = sum(vehicles_by_status.values())
        active_fleet = vehicles_by_status.get(VehicleStatus.ON_TRIP.value, 0)

        return {
            "activeFleet": active_fleet,
            "maintenanceAlerts": vehicles_by_status.get(VehicleStatus.IN_SHOP.value, 0),
            "utilizationRate": utilization_rate(active_fleet, total_vehicles),
            "totalRevenue": total_revenue or 0,
            "totalFuel": total_fuel or 0,
            "totalMaintenance": total_maintenance or 0,
            "totalVehicles": total_vehicles,
            "availableVehicles": vehicles_by_status.get(VehicleStatus.AVAILABLE.value, 0),
            "openTrips": open_trips or 0,
            "driversOnDuty": drivers_on_duty or 0,
        }

    async def _scalar(self, stmt):
        return (await self.db.execute(stmt)).scalar()
