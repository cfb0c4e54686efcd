from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.db import get_db
from fleetflow.schemas.common import Ok
from fleetflow.schemas.trip import CompleteRequest, DispatchRequest, TripCreated, TripListItem, TripOut
from fleetflow.services.ledger import FleetLedger
from fleetflow.services.store import EntityStore


router = APIRouter(prefix="/trips", tags=["trips"])

@router.get("", response_model=List[TripListItem])
async def list_trips(db: AsyncSession = Depends(get_db)):
    """Trips newest first, with vehicle and driver display names."""
    return await EntityStore(db).list_trips()


@router.post("", response_model=TripCreated)
async def dispatch(req: DispatchRequest, db: AsyncSession = Depends(get_db)):
    trip_id = await FleetLedger(db).dispatch(
        vehicle_id=req.vehicle_id,
        driver_id=req.driver_id,
        origin=req.origin,
        destination=req.destination,
        cargo_weight=req.cargo_weight,
        revenue=req.revenue,
    )
    return TripCreated(trip_id=trip_id)


@router.get("/{trip_id}", response_model=TripOut)
async def get_trip(trip_id: int, db: AsyncSession = Depends(get_db)):
    return await EntityStore(db).get("trip", trip_id)


@router.post("/{trip_id}/complete", response_model=Ok)
async def complete(trip_id: int, req: CompleteRequest, db: AsyncSession = Depends(get_db)):
    await FleetLedger(db).complete(trip_id, req.odometer)
    return Ok()


@router.post("/{trip_id}/cancel", response_model=Ok)
async def cancel(trip_id: int, db: AsyncSession = Depends(get_db)):
    await FleetLedger(db).cancel(trip_id)
    return Ok()
