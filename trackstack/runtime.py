"""
Track Your Stack - Runtime

Startup and shutdown of shared resources for whatever process hosts the
actions (web server, worker, script).
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator
from loguru import logger

from trackstack.config import settings
from trackstack.db.database import close_db, init_db
from trackstack.db.redis_client import redis_client
from trackstack.utils.logger import configure_logging


async def startup() -> None:
    """Configure logging, create tables and connect to Redis."""
    configure_logging()
    logger.info(f"Starting {settings.APP_NAME} ({settings.APP_ENV})...")

    await init_db()
    logger.info("Database initialized")

    await redis_client.initialize()
    if settings.LOCK_BACKEND != "redis":
        logger.warning(f"Lock backend '{settings.LOCK_BACKEND}' only serializes within this process")

    logger.info(f"{settings.APP_NAME} started")


async def shutdown() -> None:
    """Close Redis and dispose of the database pool."""
    logger.info(f"Shutting down {settings.APP_NAME}...")
    await redis_client.close()
    await close_db()
    logger.info("Shutdown complete")


@asynccontextmanager
async def lifespan() -> AsyncIterator[None]:
    """
    Hold shared resources open for the duration of the block.

    Example:
        async with lifespan():
            result = await actions.get_portfolio_summary(user_id, 1)
    """
    await startup()
    try:
        yield
    finally:
        await shutdown()
