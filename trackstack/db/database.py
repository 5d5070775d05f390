"""
Track Your Stack - Database Connection

One async engine per process. Sessions come from async_session_maker;
objects stay usable after commit so services can return them.
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from loguru import logger

from trackstack.config import settings


def build_engine(url: str | None = None) -> AsyncEngine:
    """Create the async engine with pool settings from config."""
    return create_async_engine(
        url or settings.database_url,
        echo=settings.DATABASE_ECHO,
        pool_pre_ping=True,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
    )


engine = build_engine()

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


async def init_db() -> None:
    """Create missing tables. Schema changes beyond that are not managed here."""
    # Registers every model on Base.metadata
    import trackstack.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database tables verified: {', '.join(sorted(Base.metadata.tables))}")


async def close_db() -> None:
    """Return pooled connections."""
    await engine.dispose()
    logger.info("Database pool disposed")
