import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from .config import settings

logger = logging.getLogger(__name__)


def configure_sqlite(async_engine: AsyncEngine) -> AsyncEngine:
    """
    Make SQLite transactions behave like the server databases.

    The sqlite3 driver defers BEGIN until the first write, which would leave
    the state read of a checkout or return outside its transaction. Driver
    level transaction handling is switched off and BEGIN is emitted when
    SQLAlchemy starts the transaction. Foreign keys are off by default in
    SQLite and are enabled per connection.
    """
    if async_engine.dialect.name != "sqlite":
        return async_engine

    sync_engine = async_engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return async_engine


# Create async engine
engine = configure_sqlite(
    create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO, pool_pre_ping=True)
)

# Create async session maker
AsyncSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
    class_=AsyncSession
)

# Base class for models
Base = declarative_base()

# Dependency to get DB session
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def serializable_transaction(
    session_factory: Optional[sessionmaker] = None,
    isolation_level: Optional[str] = None,
) -> AsyncIterator[AsyncSession]:
    """
    Open a session whose transaction runs at the checkout isolation level.

    Commits when the block exits normally. Any exception raised inside the
    block, by the commit itself, or by task cancellation rolls the
    transaction back before it propagates.
    """
    factory = session_factory or AsyncSessionLocal
    level = isolation_level or settings.CHECKOUT_ISOLATION_LEVEL

    async with factory() as session:
        try:
            await session.connection(execution_options={"isolation_level": level})
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise


async def check_database(session_factory: Optional[sessionmaker] = None) -> bool:
    """Return True when the store answers a trivial query."""
    factory = session_factory or AsyncSessionLocal
    try:
        async with factory() as session:
            await session.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database health check failed: {e}")
        return False


# Create all tables
async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
