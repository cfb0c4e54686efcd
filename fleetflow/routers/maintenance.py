from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.db import get_db
from fleetflow.schemas.common import Ok
from fleetflow.schemas.maintenance import MaintenanceCreate, MaintenanceCreated, MaintenanceOut
from fleetflow.services.ledger import FleetLedger
from fleetflow.services.store import EntityStore


router = APIRouter(prefix="/maintenance", tags=["maintenance"])

@router.get("", response_model=List[MaintenanceOut])
async def list_maintenance(db: AsyncSession = Depends(get_db)):
    return await EntityStore(db).list_maintenance()


@router.post("", response_model=MaintenanceCreated)
async def log_maintenance(req: MaintenanceCreate, db: AsyncSession = Depends(get_db)):
    maintenance_id = await FleetLedger(db).log_maintenance(
        vehicle_id=req.vehicle_id,
        issue=req.issue,
        date=req.date,
        cost=req.cost,
    )
    return MaintenanceCreated(maintenance_id=maintenance_id)


@router.post("/{maintenance_id}/close", response_model=Ok)
async def close_maintenance(maintenance_id: int, db: AsyncSession = Depends(get_db)):
    await FleetLedger(db).close_maintenance(maintenance_id)
    return Ok()
