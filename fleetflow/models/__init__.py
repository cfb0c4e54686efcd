# Base.metadata.create_all picks up every table imported here
from .vehicle import Vehicle, VehicleStatus
from .driver import Driver, DriverStatus
from .trip import Trip, TripStatus
from .maintenance import MaintenanceLog, MaintenanceStatus
from .expense import ExpenseRecord
