"""FleetFlow fleet ledger: trip dispatch state machine behind a FastAPI gateway."""

__version__ = "1.0.0"
