import logging

from sqlalchemy import create_engine, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker
from sqlmodel import SQLModel

from lions_club.config import settings, Settings

logger = logging.getLogger(__name__)


def make_engine(cfg: Settings = settings) -> AsyncEngine:
    """Build the async engine; pool limits only apply to server databases."""
    url = cfg.database_url
    if url.startswith("sqlite"):
        return create_async_engine(url)
    return create_async_engine(
        url,
        pool_size=cfg.DB_POOL_SIZE,
        max_overflow=cfg.DB_MAX_OVERFLOW,
        pool_timeout=cfg.DB_POOL_TIMEOUT,
        pool_recycle=cfg.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=bind,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


# Create an async engine
engine = make_engine()

# Create a sync engine for Alembic migrations
sync_engine = create_engine(settings.sync_database_url)

# Create a session factory
SessionLocal = make_session_factory(engine)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Creates missing tables. Managed databases should run ``alembic upgrade head`` instead."""
    # Ensure all models are imported so SQLModel metadata includes them
    import lions_club.models  # noqa: F401

    bind = bind or engine
    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database schema ready (%s)", bind.url.render_as_string(hide_password=True))


async def ping(bind: AsyncEngine | None = None) -> None:
    """Raises if the database cannot answer a trivial query."""
    bind = bind or engine
    async with bind.connect() as conn:
        await conn.execute(text("SELECT 1"))
