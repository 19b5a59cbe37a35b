"""Database session configuration"""

import logging
from typing import Any, AsyncGenerator, Dict, Optional
from sqlalchemy import event
from sqlalchemy.pool import QueuePool
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker

from taskdash import config
from taskdash.db.base import Base

logger = logging.getLogger(__name__)


def to_async_url(database_url: str) -> str:
    """
    Convert a database URL to the async driver form.

    postgresql:// and postgresql+asyncpg:// become postgresql+psycopg://,
    sqlite:// becomes sqlite+aiosqlite://. Already-async URLs pass through.
    """
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+psycopg://", 1)
    if database_url.startswith("postgresql+psycopg://"):
        return database_url
    if database_url.startswith("postgresql+asyncpg://"):
        # Legacy support: convert asyncpg URLs to psycopg
        return database_url.replace("postgresql+asyncpg://", "postgresql+psycopg://", 1)
    if database_url.startswith("sqlite+aiosqlite://"):
        return database_url
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    raise ValueError(f"Unsupported database URL format: {database_url}")


def _watch_connections(target: AsyncEngine) -> AsyncEngine:
    """Log connection churn for an engine"""
    backend = target.dialect.name

    @event.listens_for(target.sync_engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug(f"Opened {backend} connection")

    @event.listens_for(target.sync_engine, "invalidate")
    def on_invalidate(dbapi_conn, connection_record, exception):
        logger.warning(f"{backend} connection invalidated: {exception}", exc_info=exception)

    return target


def build_engine(database_url: str, **engine_kwargs) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    Pool sizing from the environment only applies to server databases;
    SQLite keeps the driver's default pool.
    """
    async_url = to_async_url(database_url)
    if async_url.startswith("sqlite"):
        return _watch_connections(create_async_engine(async_url, echo=False, **engine_kwargs))

    return _watch_connections(create_async_engine(
        async_url,
        pool_pre_ping=True,  # Verify connections before using them
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_timeout=config.DB_POOL_TIMEOUT,
        pool_recycle=config.DB_POOL_RECYCLE,
        echo=False,
        **engine_kwargs,
    ))


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


engine = build_engine(config.DATABASE_URL)

SessionLocal = build_sessionmaker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function for FastAPI routes.

    Usage:
        @router.get("/example")
        async def example(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with SessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """Create all tables that do not exist yet"""
    # Register ORM models on the metadata
    import taskdash.db.models  # noqa: F401

    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


def get_pool_stats(bind: Optional[AsyncEngine] = None) -> Dict[str, Any]:
    """
    Connection pool counters for an engine (the application engine by default).

    Only queue pools keep counters. Other pools (NullPool, StaticPool, the
    SQLite defaults) are reported with pooled=False and no numbers.
    """
    target = bind or engine
    pool = target.sync_engine.pool
    stats: Dict[str, Any] = {
        "backend": target.dialect.name,
        "pool_class": type(pool).__name__,
        "pooled": isinstance(pool, QueuePool),
    }
    if not stats["pooled"]:
        return stats

    size = pool.size()
    max_overflow = max(0, pool._max_overflow)
    checked_out = pool.checkedout()
    capacity = size + max_overflow
    stats.update(
        size=size,
        max_overflow=max_overflow,
        checked_in=pool.checkedin(),
        checked_out=checked_out,
        overflow=max(0, pool.overflow()),
        utilization_percent=round(checked_out / capacity * 100, 2) if capacity else 0.0,
    )
    return stats


def log_pool_stats(context: str = "", bind: Optional[AsyncEngine] = None) -> None:
    stats = get_pool_stats(bind)
    context_str = f" [{context}]" if context else ""

    if not stats["pooled"]:
        logger.info(f"{stats['backend']} engine uses {stats['pool_class']}{context_str}: no pool counters")
        return

    logger.info(
        f"Connection pool stats{context_str}: "
        f"available={stats['checked_in']}, in_use={stats['checked_out']}, "
        f"overflow={stats['overflow']}, utilization={stats['utilization_percent']:.1f}%"
    )
    if stats["utilization_percent"] > 80:
        logger.warning(
            f"Connection pool utilization is high ({stats['utilization_percent']:.1f}%). "
            f"Raise DB_POOL_SIZE or look for slow queries."
        )

