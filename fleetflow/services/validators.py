from datetime import date

from fleetflow.models.driver import DISPATCHABLE_DRIVER_STATUSES
from fleetflow.models.vehicle import VehicleStatus


class BusinessRules:
    """Pure checks behind the dispatch preconditions. No I/O, no side effects."""

    @staticmethod
    def vehicle_dispatchable(status: str | None) -> bool:
        return status == VehicleStatus.AVAILABLE.value

    @staticmethod
    def within_capacity(cargo_weight: float, max_payload: float) -> bool:
        return cargo_weight <= max_payload

    @staticmethod
    def driver_dispatchable(status: str | None) -> bool:
        return status in DISPATCHABLE_DRIVER_STATUSES

    @staticmethod
    def license_valid_on(expiry: date, today: date) -> bool:
        # A license expiring today is still valid for today's dispatches
        return expiry >= today

    @staticmethod
    def odometer_advances(current: float, reported: float) -> bool:
        return reported >= current
