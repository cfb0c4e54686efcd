from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from fleetflow.core.db import engine, init_models
from fleetflow.core.environment import get_cors_origins
from fleetflow.core.logging import setup_logging
from fleetflow.exceptions import (
    fleet_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from fleetflow.routers import drivers, expenses, health, maintenance, metrics, stats, trips, vehicles
from fleetflow.services.exceptions import FleetError


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_models()
    logger.info("Fleet ledger ready", extra={"database": engine.url.render_as_string(hide_password=True)})
    try:
        yield
    finally:
        # teardown on shutdown
        await engine.dispose()


app = FastAPI(title="FleetFlow Ledger API", lifespan=lifespan)

# Register exception handlers
app.add_exception_handler(FleetError, fleet_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_methods=["*"],   # Allows POST, GET, OPTIONS, etc
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    logger.info(
        f"{request.method} {request.url.path}",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 3),
        },
    )
    return response


app.include_router(health.router)
app.include_router(vehicles.router)
app.include_router(drivers.router)
app.include_router(trips.router)
app.include_router(maintenance.router)
app.include_router(expenses.router)
app.include_router(stats.router)
app.include_router(metrics.router)
