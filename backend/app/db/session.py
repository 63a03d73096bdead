import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import text
from app.core.config import settings

logger = logging.getLogger("streamhub.db")


def _engine_options(database_url: str) -> dict:
    """
    Connection pooling options for the configured backend.

    - pool_size / max_overflow: persistent and burst connections (server databases only)
    - pool_pre_ping: verify connections are alive before use
    - pool_recycle: recycle connections after 1 hour to prevent DB-side timeouts
    - pool_timeout: wait up to 30s for a connection before raising an error
    """
    options = {"echo": settings.SQLALCHEMY_ECHO}
    if database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_timeout=30,
    )
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def init_db() -> None:
    """Create all tables that do not exist yet."""
    from app.db.base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db_connection() -> bool:
    """
    Verify database connectivity. Used by health checks.
    Returns True if connection is successful, False otherwise.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        return False
