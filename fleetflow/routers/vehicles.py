from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.db import get_db
from fleetflow.schemas.common import Created
from fleetflow.schemas.vehicle import VehicleCreate, VehicleOut, VehicleStatusFilter
from fleetflow.services.store import EntityStore


router = APIRouter(prefix="/vehicles", tags=["vehicles"])

@router.get("", response_model=List[VehicleOut])
async def list_vehicles(status: VehicleStatusFilter = None, db: AsyncSession = Depends(get_db)):
    return await EntityStore(db).list("vehicle", status=status)


@router.post("", response_model=Created)
async def create_vehicle(req: VehicleCreate, db: AsyncSession = Depends(get_db)):
    vehicle = await EntityStore(db).create("vehicle", **req.model_dump())
    return Created(id=vehicle.id)


@router.get("/{vehicle_id}", response_model=VehicleOut)
async def get_vehicle(vehicle_id: int, db: AsyncSession = Depends(get_db)):
    return await EntityStore(db).get("vehicle", vehicle_id)
