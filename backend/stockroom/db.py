import logging
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from .config import get_settings


logger = logging.getLogger(__name__)


@lru_cache
def get_engine() -> AsyncEngine:
    """Process-wide engine, created on first use and kept until ``dispose_engine``."""
    settings = get_settings()
    logger.info("creating database engine for %s", settings.database_url.split("@")[-1])
    return create_async_engine(settings.database_url, echo=False, future=True, pool_pre_ping=True)


@lru_cache
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), expire_on_commit=False, class_=AsyncSession)


async def dispose_engine() -> None:
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        logger.info("database engine disposed")
    get_sessionmaker.cache_clear()
    get_engine.cache_clear()


class Base(DeclarativeBase):
    pass


async def get_session() -> AsyncSession:
    async with get_sessionmaker()() as session:
        yield session
