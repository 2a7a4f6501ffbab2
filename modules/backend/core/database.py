"""
Database Sessions.

Async SQLAlchemy engine for PostgreSQL (asyncpg). The engine is built on
first use so importing models or services never needs DB_PASSWORD.

Two session scopes share one rule: commit when the block finishes,
roll back when it raises.
    get_db_session  - FastAPI dependency, one session per request
    get_session     - context manager for tasks, consumers and the bot
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from modules.backend.core.logging import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        from modules.backend.core.config import get_app_config, get_database_url

        db_config = get_app_config().database
        _engine = create_async_engine(
            get_database_url(),
            pool_size=db_config.pool_size,
            max_overflow=db_config.max_overflow,
            pool_timeout=db_config.pool_timeout,
            pool_recycle=db_config.pool_recycle,
            pool_pre_ping=True,
            echo=db_config.echo,
            echo_pool=db_config.echo_pool,
        )
        logger.debug("Database engine created", extra={"host": db_config.host, "database": db_config.name})
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)
    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Unit of work outside a request.

        async with get_session() as session:
            mission = await MissionRepository(session).get_by_id(mission_id)
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async with get_session() as session:
        yield session


async def dispose_engine() -> None:
    """Close pooled connections; called from the API lifespan and the worker shutdown hook."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
