class FleetError(Exception):
    """Base class for every failure the gateway knows how to render."""

    code = "FleetError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LedgerDomainError(FleetError):
    """Base class for all client-visible domain errors (precondition failures)."""

    code = "LedgerDomainError"
    status_code = 400


class VehicleUnavailableError(LedgerDomainError):
    """Raised when the vehicle is missing or not in a status that allows the transition."""

    code = "VehicleUnavailable"
    status_code = 409

    def __init__(self, vehicle_id: int, status: str | None = None):
        self.vehicle_id = vehicle_id
        self.status = status
        if status is None:
            message = "Vehicle is not available"
        else:
            message = f"Vehicle is not available (currently {status})"
        super().__init__(message)


class CapacityExceededError(LedgerDomainError):
    """Raised when cargo weight is above the vehicle's max payload."""

    code = "CapacityExceeded"

    def __init__(self, requested: float, limit: float):
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"Cargo weight ({_num(requested)}kg) exceeds vehicle capacity ({_num(limit)}kg)"
        )


class DriverUnavailableError(LedgerDomainError):
    """Raised when the driver is missing or not On Duty / Available."""

    code = "DriverUnavailable"
    status_code = 409

    def __init__(self, driver_id: int, status: str | None = None):
        self.driver_id = driver_id
        self.status = status or "Unknown"
        super().__init__(
            f"Driver is currently {self.status}. Must be On Duty or Available."
        )


class LicenseExpiredError(LedgerDomainError):
    code = "LicenseExpired"

    def __init__(self, driver_id: int, expiry):
        self.driver_id = driver_id
        self.expiry = expiry
        super().__init__(f"Driver license has expired (expiry {expiry})")


class NotFoundError(LedgerDomainError):
    """Raised when a referenced entity does not exist."""

    code = "NotFound"
    status_code = 404

    def __init__(self, kind: str, key):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind.capitalize()} {key} not found")


class TripNotFoundError(NotFoundError):
    code = "TripNotFound"

    def __init__(self, trip_id):
        super().__init__("trip", trip_id)
        self.message = "Trip not found"
        self.args = (self.message,)


class TripNotOpenError(LedgerDomainError):
    """Raised when a trip that is not Dispatched is completed or cancelled."""

    code = "TripNotOpen"
    status_code = 409

    def __init__(self, trip_id: int, status: str):
        self.trip_id = trip_id
        self.status = status
        super().__init__(f"Trip {trip_id} is {status}, only Dispatched trips can be closed")


class OdometerRegressionError(LedgerDomainError):
    code = "OdometerRegression"

    def __init__(self, current: float, reported: float):
        self.current = current
        self.reported = reported
        super().__init__(
            f"Final odometer ({_num(reported)}km) is below the current reading ({_num(current)}km)"
        )


class MaintenanceNotOpenError(LedgerDomainError):
    code = "MaintenanceNotOpen"
    status_code = 409

    def __init__(self, maintenance_id: int, status: str):
        self.maintenance_id = maintenance_id
        self.status = status
        super().__init__(f"Maintenance log {maintenance_id} is already {status}")


class DuplicateKeyError(LedgerDomainError):
    """Raised on a unique constraint violation (license plate, license number)."""

    code = "DuplicateKey"
    status_code = 409


class StorageFailureError(FleetError):
    """Raised when a database operation fails; the transaction has been rolled back."""

    code = "StorageFailure"
    status_code = 500


def _num(value: float) -> str:
    # 25000.0 -> "25000", 12.5 -> "12.5"
    return str(int(value)) if float(value).is_integer() else str(value)
