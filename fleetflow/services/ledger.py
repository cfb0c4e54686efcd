import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.environment import is_strict_transitions
from fleetflow.core.locks import KeyedLock, ledger_locks
from fleetflow.core.metrics import track_performance
from fleetflow.models import (
    Driver,
    DriverStatus,
    ExpenseRecord,
    MaintenanceLog,
    MaintenanceStatus,
    Trip,
    TripStatus,
    Vehicle,
    VehicleStatus,
)
from fleetflow.models.driver import ADMIN_DRIVER_STATUSES, DISPATCHABLE_DRIVER_STATUSES
from fleetflow.services.exceptions import (
    CapacityExceededError,
    DriverUnavailableError,
    LicenseExpiredError,
    MaintenanceNotOpenError,
    NotFoundError,
    OdometerRegressionError,
    TripNotFoundError,
    TripNotOpenError,
    VehicleUnavailableError,
)
from fleetflow.services.store import EntityStore, atomic
from fleetflow.services.validators import BusinessRules

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FleetLedger:
    """
    The trip lifecycle state machine.

    Owns every transition that touches more than one row:
    - Dispatch: creates a Trip and engages its vehicle and driver
    - Complete / Cancel: closes a Trip and releases its vehicle and driver
    - LogMaintenance / CloseMaintenance: moves a vehicle in and out of the shop
    - Administrative driver status override and expense recording

    Each transition runs as one database transaction. Preconditions are all
    checked before the first write, so a rejected transition leaves no trace.
    Transitions sharing a vehicle or driver are serialized through the keyed
    lock registry and, where the database supports it, SELECT ... FOR UPDATE.

    With ``strict`` on (the default, see FLEET_STRICT_TRANSITIONS) three more
    preconditions apply: only Dispatched trips can be completed, the final
    odometer cannot go backwards, and a vehicle on a trip cannot be sent to the
    shop. With ``strict`` off the permissive legacy behavior is kept.
    """

    def __init__(
        self,
        db: AsyncSession,
        locks: KeyedLock = ledger_locks,
        strict: Optional[bool] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            db (AsyncSession): Session the transitions run against
            locks (KeyedLock): Lock registry shared by every ledger of the process
            strict (bool, optional): Overrides FLEET_STRICT_TRANSITIONS
            clock (callable): Source of "now"; "today" for license checks is its date
        """
        self.db = db
        self.store = EntityStore(db)
        self.locks = locks
        self.strict = is_strict_transitions() if strict is None else strict
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return self.now().date()

    @track_performance(service_name="FleetLedger")
    async def dispatch(
        self,
        vehicle_id: int,
        driver_id: int,
        origin: str,
        destination: str,
        cargo_weight: float,
        revenue: float = 0,
    ) -> int:
        """
        Creates a Dispatched trip and engages the vehicle and driver.

        Preconditions, first failure wins:
            1. vehicle exists and is Available        -> VehicleUnavailableError
            2. cargo_weight <= vehicle.max_payload     -> CapacityExceededError
            3. driver exists and is On Duty/Available  -> DriverUnavailableError
            4. driver.license_expiry >= today          -> LicenseExpiredError

        Returns:
            int: key of the new trip
        """
        async with self.locks.hold([("vehicle", vehicle_id), ("driver", driver_id)]):
            async with atomic(self.db, "trip"):
                vehicle = await self._locked(Vehicle, vehicle_id)
                if vehicle is None or not BusinessRules.vehicle_dispatchable(vehicle.status):
                    raise VehicleUnavailableError(vehicle_id, vehicle.status if vehicle else None)

                if not BusinessRules.within_capacity(cargo_weight, vehicle.max_payload):
                    raise CapacityExceededError(cargo_weight, vehicle.max_payload)

                driver = await self._locked(Driver, driver_id)
                if driver is None or not BusinessRules.driver_dispatchable(driver.status):
                    raise DriverUnavailableError(driver_id, driver.status if driver else None)

                if not BusinessRules.license_valid_on(driver.license_expiry, self.today()):
                    raise LicenseExpiredError(driver_id, driver.license_expiry)

                # Compare-and-set: a writer outside this process may have claimed the vehicle
                claimed = await self.db.execute(
                    update(Vehicle)
                    .where(
                        Vehicle.id == vehicle_id,
                        Vehicle.status == VehicleStatus.AVAILABLE.value,
                    )
                    .values(status=VehicleStatus.ON_TRIP.value)
                    .execution_options(synchronize_session="evaluate")
                )
                if claimed.rowcount != 1:
                    raise VehicleUnavailableError(vehicle_id)

                # Same claim for the driver; the trip counter is incremented in SQL
                engaged = await self.db.execute(
                    update(Driver)
                    .where(
                        Driver.id == driver_id,
                        Driver.status.in_(sorted(DISPATCHABLE_DRIVER_STATUSES)),
                    )
                    .values(status=DriverStatus.ON_TRIP.value, total_trips=Driver.total_trips + 1)
                    .execution_options(synchronize_session=False)
                )
                if engaged.rowcount != 1:
                    raise DriverUnavailableError(driver_id, await self._driver_status(driver_id))

                trip = Trip(
                    vehicle_id=vehicle_id,
                    driver_id=driver_id,
                    origin=origin,
                    destination=destination,
                    cargo_weight=cargo_weight,
                    revenue=revenue or 0,
                    status=TripStatus.DISPATCHED.value,
                    start_time=self.now(),
                )
                self.db.add(trip)
                await self.db.flush()

        logger.info(
            "Trip dispatched",
            extra={"trip_id": trip.id, "vehicle_id": vehicle_id, "driver_id": driver_id},
        )
        return trip.id

    @track_performance(service_name="FleetLedger")
    async def complete(self, trip_id: int, final_odometer: float) -> None:
        """
        Closes a trip and frees its vehicle and driver.

        Sets the trip Completed with an end time, the vehicle Available with the
        reported odometer, the driver On Duty with one more completed trip.
        """
        vehicle_id, driver_id = await self._trip_keys(trip_id)

        async with self.locks.hold([("vehicle", vehicle_id), ("driver", driver_id)]):
            async with atomic(self.db, "trip"):
                trip = await self._locked(Trip, trip_id)
                if trip is None:
                    raise TripNotFoundError(trip_id)
                if self.strict and trip.status != TripStatus.DISPATCHED.value:
                    raise TripNotOpenError(trip_id, trip.status)

                vehicle = await self._require(Vehicle, "vehicle", trip.vehicle_id)
                driver = await self._require(Driver, "driver", trip.driver_id)

                if self.strict and not BusinessRules.odometer_advances(vehicle.odometer, final_odometer):
                    raise OdometerRegressionError(vehicle.odometer, final_odometer)

                closing = update(Trip).where(Trip.id == trip_id)
                if self.strict:
                    closing = closing.where(Trip.status == TripStatus.DISPATCHED.value)
                closed = await self.db.execute(
                    closing.values(status=TripStatus.COMPLETED.value, end_time=self.now())
                    .execution_options(synchronize_session=False)
                )
                if closed.rowcount != 1:
                    raise TripNotOpenError(trip_id, trip.status)

                vehicle.status = VehicleStatus.AVAILABLE.value
                vehicle.odometer = final_odometer
                await self.db.execute(
                    update(Driver)
                    .where(Driver.id == driver.id)
                    .values(status=DriverStatus.ON_DUTY.value, completed_trips=Driver.completed_trips + 1)
                    .execution_options(synchronize_session=False)
                )
                await self.db.flush()

        logger.info(
            "Trip completed",
            extra={"trip_id": trip_id, "vehicle_id": vehicle_id, "driver_id": driver_id, "odometer": final_odometer},
        )

    @track_performance(service_name="FleetLedger")
    async def cancel(self, trip_id: int) -> None:
        """Cancels an open trip; vehicle and driver are released without a completion."""
        vehicle_id, driver_id = await self._trip_keys(trip_id)

        async with self.locks.hold([("vehicle", vehicle_id), ("driver", driver_id)]):
            async with atomic(self.db, "trip"):
                trip = await self._locked(Trip, trip_id)
                if trip is None:
                    raise TripNotFoundError(trip_id)
                if trip.status != TripStatus.DISPATCHED.value:
                    raise TripNotOpenError(trip_id, trip.status)

                vehicle = await self._require(Vehicle, "vehicle", trip.vehicle_id)
                driver = await self._require(Driver, "driver", trip.driver_id)

                trip.status = TripStatus.CANCELLED.value
                trip.end_time = self.now()
                if vehicle.status == VehicleStatus.ON_TRIP.value:
                    vehicle.status = VehicleStatus.AVAILABLE.value
                await self.db.execute(
                    update(Driver)
                    .where(Driver.id == driver.id, Driver.status == DriverStatus.ON_TRIP.value)
                    .values(status=DriverStatus.ON_DUTY.value)
                    .execution_options(synchronize_session=False)
                )
                await self.db.flush()

        logger.info("Trip cancelled", extra={"trip_id": trip_id})

    @track_performance(service_name="FleetLedger")
    async def log_maintenance(self, vehicle_id: int, issue: str, date: date, cost: float) -> int:
        """
        Opens a maintenance log and sends the vehicle to the shop.

        Returns:
            int: key of the new maintenance log
        """
        async with self.locks.hold([("vehicle", vehicle_id)]):
            async with atomic(self.db, "maintenance"):
                vehicle = await self._require(Vehicle, "vehicle", vehicle_id)
                if self.strict and vehicle.status == VehicleStatus.ON_TRIP.value:
                    raise VehicleUnavailableError(vehicle_id, vehicle.status)

                log = MaintenanceLog(
                    vehicle_id=vehicle_id,
                    issue=issue,
                    date=date,
                    cost=cost,
                    status=MaintenanceStatus.NEW.value,
                )
                self.db.add(log)
                vehicle.status = VehicleStatus.IN_SHOP.value
                await self.db.flush()

        logger.info("Maintenance logged", extra={"maintenance_id": log.id, "vehicle_id": vehicle_id})
        return log.id

    @track_performance(service_name="FleetLedger")
    async def close_maintenance(self, maintenance_id: int) -> None:
        """
        Resolves a maintenance log. The vehicle returns to Available once it has
        no other New log.
        """
        async with atomic(self.db, "maintenance"):
            peek = await self.db.get(MaintenanceLog, maintenance_id, populate_existing=True)
            if peek is None:
                raise NotFoundError("maintenance", maintenance_id)
            vehicle_id = peek.vehicle_id

        async with self.locks.hold([("vehicle", vehicle_id)]):
            async with atomic(self.db, "maintenance"):
                log = await self._require(MaintenanceLog, "maintenance", maintenance_id)
                if log.status != MaintenanceStatus.NEW.value:
                    raise MaintenanceNotOpenError(maintenance_id, log.status)

                log.status = MaintenanceStatus.RESOLVED.value
                log.resolved_at = self.now()
                await self.db.flush()

                vehicle = await self._require(Vehicle, "vehicle", vehicle_id)
                still_open = (
                    await self.db.execute(
                        select(func.count(MaintenanceLog.id)).where(
                            MaintenanceLog.vehicle_id == vehicle_id,
                            MaintenanceLog.status == MaintenanceStatus.NEW.value,
                        )
                    )
                ).scalar()
                if vehicle.status == VehicleStatus.IN_SHOP.value and not still_open:
                    vehicle.status = VehicleStatus.AVAILABLE.value
                await self.db.flush()

        logger.info(
            "Maintenance closed",
            extra={"maintenance_id": maintenance_id, "vehicle_id": vehicle_id, "open_logs_left": still_open},
        )

    @track_performance(service_name="FleetLedger")
    async def set_driver_status(self, driver_id: int, status: str) -> None:
        """Administrative override. Never checked against the driver's open trips."""
        if status not in ADMIN_DRIVER_STATUSES:
            raise ValueError(f"Unsupported driver status: {status!r}")

        async with self.locks.hold([("driver", driver_id)]):
            driver = await self.store.update("driver", driver_id, status=status)

        logger.info("Driver status overridden", extra={"driver_id": driver_id, "status": driver.status})

    @track_performance(service_name="FleetLedger")
    async def record_expense(
        self,
        trip_id: int,
        fuel_cost: float,
        misc_expense: float,
        distance: float,
        date: date,
        liters: float = 0,
    ) -> int:
        """
        Records the running cost of a trip. Vehicle and driver are copied from
        the trip. Expenses are expected on Completed trips; others are accepted
        with a warning.
        """
        async with atomic(self.db, "expense"):
            trip = await self.db.get(Trip, trip_id, populate_existing=True)
            if trip is None:
                raise TripNotFoundError(trip_id)
            if trip.status != TripStatus.COMPLETED.value:
                logger.warning(
                    "Expense recorded against a trip that is not Completed",
                    extra={"trip_id": trip_id, "trip_status": trip.status},
                )

            expense = ExpenseRecord(
                trip_id=trip_id,
                vehicle_id=trip.vehicle_id,
                driver_id=trip.driver_id,
                fuel_cost=fuel_cost,
                misc_expense=misc_expense,
                distance=distance,
                liters=liters or 0,
                date=date,
            )
            self.db.add(expense)
            await self.db.flush()

        return expense.id

    async def _trip_keys(self, trip_id: int):
        # vehicle_id/driver_id never change after dispatch, so a plain read is enough to pick the locks
        async with atomic(self.db, "trip"):
            trip = await self.db.get(Trip, trip_id, populate_existing=True)
            if trip is None:
                raise TripNotFoundError(trip_id)
            return trip.vehicle_id, trip.driver_id

    async def _driver_status(self, driver_id: int):
        return (await self.db.execute(select(Driver.status).where(Driver.id == driver_id))).scalar()

    async def _locked(self, model, key: int):
        stmt = (
            select(model)
            .where(model.id == key)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def _require(self, model, kind: str, key: int):
        record = await self._locked(model, key)
        if record is None:
            raise NotFoundError(kind, key)
        return record
