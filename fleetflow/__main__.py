import logging
import os

import uvicorn

from fleetflow.core.environment import get_log_level
from fleetflow.core.logging import setup_logging
from fleetflow.main import app

logger = logging.getLogger(__name__)


def main():
    setup_logging()

    host = os.getenv("SERVER_HOST", "0.0.0.0")
    port = int(os.getenv("SERVER_PORT", "8000"))

    logger.info(f"Starting FleetFlow Ledger API on {host}:{port}")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=get_log_level().lower(),
        access_log=False
    )


if __name__ == "__main__":
    main()
