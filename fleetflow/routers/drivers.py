from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.db import get_db
from fleetflow.schemas.common import Created, Ok
from fleetflow.schemas.driver import DriverCreate, DriverOut, DriverStatusFilter, DriverStatusUpdate
from fleetflow.services.ledger import FleetLedger
from fleetflow.services.store import EntityStore


router = APIRouter(prefix="/drivers", tags=["drivers"])

@router.get("", response_model=List[DriverOut])
async def list_drivers(
    status: DriverStatusFilter = None,
    db: AsyncSession = Depends(get_db),
):
    return await EntityStore(db).list("driver", status=status)


@router.post("", response_model=Created)
async def create_driver(req: DriverCreate, db: AsyncSession = Depends(get_db)):
    driver = await EntityStore(db).create("driver", **req.model_dump())
    return Created(id=driver.id)


@router.get("/{driver_id}", response_model=DriverOut)
async def get_driver(driver_id: int, db: AsyncSession = Depends(get_db)):
    return await EntityStore(db).get("driver", driver_id)


@router.post("/{driver_id}/status", response_model=Ok)
async def set_driver_status(driver_id: int, req: DriverStatusUpdate, db: AsyncSession = Depends(get_db)):
    """Administrative override; not checked against the driver's open trips."""
    await FleetLedger(db).set_driver_status(driver_id, req.status)
    return Ok()
