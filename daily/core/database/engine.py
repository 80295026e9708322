from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from daily.core import config


def _engine_options(url: str) -> dict[str, Any]:
    if make_url(url).get_backend_name() == "sqlite":
        # Single file, nothing to recycle or ping
        return {}
    # Some information about pool sizing: https://github.com/brettwooldridge/HikariCP/wiki/About-Pool-Sizing
    return dict(
        pool_size=config.DB_POOL_SIZE,
        max_overflow=0,
        pool_timeout=15,  # seconds
        pool_recycle=1800,
        pool_pre_ping=True,
    )


def create_engine(url: str = config.SQLALCHEMY_DATABASE_URL) -> AsyncEngine:
    return create_async_engine(url, echo=False, **_engine_options(url))


engine = create_engine()
# Stores hand entities back after committing, so keep loaded attributes around
SessionLocal = async_sessionmaker(engine, autoflush=False, expire_on_commit=False, class_=AsyncSession)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency, one session per request."""
    async with get_db_context() as db:
        yield db


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as db:
        yield db
