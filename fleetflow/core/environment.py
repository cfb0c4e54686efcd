import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def get_database_url() -> str:
    """Returns SQLAlchemy database URL based on environment"""
    return os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./fleetflow.db")


def get_log_level() -> str:
    return os.getenv("FLEET_LOG_LEVEL", "INFO").upper()


def is_sql_echo() -> bool:
    return _flag("FLEET_SQL_ECHO", "false")


def is_strict_transitions() -> bool:
    """
    Detects whether the ledger enforces the strict trip/maintenance preconditions
    (completion only from Dispatched, non-decreasing odometer, no maintenance mid-trip).
    """
    return _flag("FLEET_STRICT_TRANSITIONS", "true")


def get_cors_origins() -> list[str]:
    raw = os.getenv("FLEET_CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
