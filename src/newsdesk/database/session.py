"""
Async engine and per-request sessions for classification storage.

Pool sizing and SQL echo come from Settings (DB_POOL_SIZE, DB_MAX_OVERFLOW,
DB_ECHO).
"""

import logging
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from newsdesk.config import settings


logger = logging.getLogger(__name__)


engine = create_async_engine(
    settings.async_database_url,
    echo=settings.DB_ECHO,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
)

AsyncSessionFactory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session: one transaction per request.

    The endpoint's work is committed when the request handler returns and
    rolled back if it raises.
    """
    async with AsyncSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            logger.warning("Rolling back classification transaction")
            await session.rollback()
            raise
