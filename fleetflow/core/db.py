from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from fleetflow.core.environment import get_database_url, is_sql_echo


DATABASE_URL = get_database_url()

engine = create_async_engine(
    DATABASE_URL,
    echo=is_sql_echo(),
    future=True,
)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)
Base = declarative_base()


def enable_sqlite_foreign_keys(async_engine) -> None:
    """SQLite ships with foreign keys off; switch them on for every new connection."""
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)


async def init_models(async_engine=engine) -> None:
    # Import for side effects: registers every table on Base.metadata
    import fleetflow.models  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def transaction(session: AsyncSession):
    """
    Opens the unit of work for one store/ledger operation.

    A plain ``begin()`` when the session is idle; a SAVEPOINT when the caller
    already holds a transaction, so the outer owner keeps control of the commit.
    """
    if session.in_transaction():
        return session.begin_nested()
    return session.begin()


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
