import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Type

from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.db import transaction
from fleetflow.models import Driver, ExpenseRecord, MaintenanceLog, Trip, Vehicle
from fleetflow.services.exceptions import (
    DuplicateKeyError,
    NotFoundError,
    StorageFailureError,
)

logger = logging.getLogger(__name__)


KINDS: Dict[str, Type] = {
    "vehicle": Vehicle,
    "driver": Driver,
    "trip": Trip,
    "maintenance": MaintenanceLog,
    "expense": ExpenseRecord,
}

# Listings shown newest first; everything else is creation order
NEWEST_FIRST = {"trip", "maintenance"}

UNIQUE_FIELDS = {
    "vehicle": ("license_plate",),
    "driver": ("license_no",),
}


def model_for(kind: str):
    try:
        return KINDS[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind: {kind!r}") from None


def to_dict(record) -> Dict[str, Any]:
    return {c.key: getattr(record, c.key) for c in inspect(record).mapper.column_attrs}


def _is_unique_violation(exc: IntegrityError) -> bool:
    text = str(exc.orig).lower()
    return "unique" in text or "duplicate key" in text


@asynccontextmanager
async def atomic(session: AsyncSession, kind: str | None = None, fields: Dict[str, Any] | None = None):
    """
    One all-or-nothing unit of work against the store.

    Domain errors raised inside the block roll the transaction back and propagate
    untouched. Database errors roll back and surface as DuplicateKeyError (unique
    constraint) or StorageFailureError (anything else).
    """
    try:
        async with transaction(session):
            yield session
    except IntegrityError as e:
        if _is_unique_violation(e):
            raise _duplicate(kind, fields or {}, e) from e
        logger.error("Integrity failure, transaction rolled back", exc_info=True)
        raise StorageFailureError(f"Storage integrity failure: {e.orig}") from e
    except SQLAlchemyError as e:
        logger.error("Storage failure, transaction rolled back", exc_info=True)
        raise StorageFailureError(f"Storage failure: {e}") from e


def _duplicate(kind: str | None, fields: Dict[str, Any], exc: IntegrityError) -> DuplicateKeyError:
    text = str(exc.orig)
    for field in UNIQUE_FIELDS.get(kind, ()):
        if field in text or field in fields:
            return DuplicateKeyError(f"{kind.capitalize()} with {field} '{fields.get(field)}' already exists")
    return DuplicateKeyError(f"Duplicate {kind or 'record'}: {exc.orig}")


class EntityStore:
    """
    Durable CRUD over vehicles, drivers, trips, maintenance logs and expenses.

    Every public method is its own transaction. Multi-row state transitions live
    in FleetLedger, which uses `fetch` inside its own transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, kind: str, **fields) -> Any:
        model = model_for(kind)
        if kind == "trip":
            raise ValueError("Trips are only created by FleetLedger.dispatch")
        record = model(**fields)
        async with atomic(self.db, kind, fields):
            self.db.add(record)
            await self.db.flush()
        logger.info(f"Created {kind}", extra={"kind": kind, "key": record.id})
        return record

    async def get(self, kind: str, key: int) -> Any:
        async with atomic(self.db, kind):
            return await self.fetch(kind, key)

    async def list(self, kind: str, **filters) -> List[Any]:
        model = model_for(kind)
        stmt = select(model)
        for column, value in filters.items():
            if value is None:
                continue
            stmt = stmt.where(self._column(model, column) == value)
        order = model.id.desc() if kind in NEWEST_FIRST else model.id.asc()

        stmt = stmt.order_by(order).execution_options(populate_existing=True)

        async with atomic(self.db, kind):
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

    async def update(self, kind: str, key: int, **fields) -> Any:
        model = model_for(kind)
        for column in fields:
            if column == "id":
                raise ValueError("Surrogate keys are assigned by the store")
            self._column(model, column)

        async with atomic(self.db, kind, fields):
            record = await self.fetch(kind, key, for_update=True)
            for column, value in fields.items():
                setattr(record, column, value)
            await self.db.flush()
        return record

    async def fetch(self, kind: str, key: int, for_update: bool = False) -> Any:
        """Loads one row inside the caller's transaction; raises NotFoundError."""
        model = model_for(kind)
        stmt = select(model).where(model.id == key).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        record = (await self.db.execute(stmt)).scalar_one_or_none()
        if record is None:
            raise NotFoundError(kind, key)
        return record

    async def list_trips(self) -> List[Dict[str, Any]]:
        """Trips newest first, joined with vehicle and driver display names."""
        stmt = (
            select(
                Trip,
                Vehicle.name.label("vehicle_name"),
                Vehicle.max_payload.label("max_payload"),
                Driver.name.label("driver_name"),
            )
            .join(Vehicle, Vehicle.id == Trip.vehicle_id)
            .join(Driver, Driver.id == Trip.driver_id)
            .order_by(Trip.id.desc())
            .execution_options(populate_existing=True)
        )
        async with atomic(self.db, "trip"):
            rows = (await self.db.execute(stmt)).all()
        return [
            {
                **to_dict(row.Trip),
                "vehicle_name": row.vehicle_name,
                "max_payload": row.max_payload,
                "driver_name": row.driver_name,
            }
            for row in rows
        ]

    async def list_maintenance(self) -> List[Dict[str, Any]]:
        stmt = (
            select(MaintenanceLog, Vehicle.name.label("vehicle_name"))
            .join(Vehicle, Vehicle.id == MaintenanceLog.vehicle_id)
            .order_by(MaintenanceLog.id.desc())
            .execution_options(populate_existing=True)
        )
        async with atomic(self.db, "maintenance"):
            rows = (await self.db.execute(stmt)).all()
        return [
            {**to_dict(row.MaintenanceLog), "vehicle_name": row.vehicle_name}
            for row in rows
        ]

    async def list_expenses(self) -> List[Dict[str, Any]]:
        stmt = (
            select(
                ExpenseRecord,
                Vehicle.name.label("vehicle_name"),
                Driver.name.label("driver_name"),
            )
            .join(Vehicle, Vehicle.id == ExpenseRecord.vehicle_id)
            .join(Driver, Driver.id == ExpenseRecord.driver_id)
            .order_by(ExpenseRecord.id.asc())
            .execution_options(populate_existing=True)
        )
        async with atomic(self.db, "expense"):
            rows = (await self.db.execute(stmt)).all()
        return [
            {
                **to_dict(row.ExpenseRecord),
                "vehicle_name": row.vehicle_name,
                "driver_name": row.driver_name,
            }
            for row in rows
        ]

    @staticmethod
    def _column(model, name: str):
        if name not in model.__table__.columns:
            raise ValueError(f"{model.__name__} has no column {name!r}")
        return getattr(model, name)
