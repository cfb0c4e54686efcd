from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST

from fleetflow.core.metrics import get_prometheus_metrics

router = APIRouter(prefix="/metrics", tags=["metrics"])

@router.get("/prometheus")  # Public endpoint for Prometheus scraping
async def prometheus_metrics():
    """Prometheus metrics endpoint for scraping"""
    return Response(content=get_prometheus_metrics(), media_type=CONTENT_TYPE_LATEST)
