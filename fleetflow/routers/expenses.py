from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.db import get_db
from fleetflow.schemas.common import Created
from fleetflow.schemas.expense import ExpenseCreate, ExpenseOut
from fleetflow.services.ledger import FleetLedger
from fleetflow.services.store import EntityStore


router = APIRouter(prefix="/expenses", tags=["expenses"])

@router.get("", response_model=List[ExpenseOut])
async def list_expenses(db: AsyncSession = Depends(get_db)):
    return await EntityStore(db).list_expenses()


@router.post("", response_model=Created)
async def record_expense(req: ExpenseCreate, db: AsyncSession = Depends(get_db)):
    expense_id = await FleetLedger(db).record_expense(
        trip_id=req.trip_id,
        fuel_cost=req.fuel_cost,
        misc_expense=req.misc_expense,
        distance=req.distance,
        liters=req.liters,
        date=req.date,
    )
    return Created(id=expense_id)
