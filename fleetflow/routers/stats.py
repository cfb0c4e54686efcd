from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.db import get_db
from fleetflow.schemas.common import StatsOut
from fleetflow.services.stats import StatsAggregator


router = APIRouter(prefix="/stats", tags=["stats"])

@router.get("", response_model=StatsOut)
async def get_stats(db: AsyncSession = Depends(get_db)):
    """Dashboard counters, recomputed on every call."""
    return await StatsAggregator(db).snapshot()
