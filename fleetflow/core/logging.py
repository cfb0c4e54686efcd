import logging
import sys
from pythonjsonlogger import jsonlogger

from fleetflow.core.environment import get_log_level

# Drivers and transports that would otherwise echo every statement or request
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncpg", "httpx", "uvicorn.access")


def setup_logging(level: str | None = None):
    """
    Configures JSON logging on stdout for the ledger service.

    Every `extra={...}` passed by the ledger (trip_id, vehicle_id, driver_id,
    duration_ms, ...) becomes a top-level key of the log line.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level or get_log_level())

    # setup_logging may run again (uvicorn reload, tests); keep a single handler
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_handler = logging.StreamHandler(sys.stdout)
    log_handler.setFormatter(jsonlogger.JsonFormatter(
        fmt='%(asctime)s %(levelname)s %(name)s %(message)s',
        datefmt='%Y-%m-%dT%H:%M:%SZ'
    ))
    root_logger.addHandler(log_handler)

    # The gateway middleware already logs each request once
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Ledger logging configured", extra={"level": root_logger.level})
