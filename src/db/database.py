from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import AsyncGenerator

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Session

from src.config import get_settings


class Base(DeclarativeBase):
    pass


settings = get_settings()


def _ensure_sqlite_dir(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


engine = create_async_engine(settings.database_url, echo=settings.debug)
async_session_factory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session


async def init_db() -> None:
    # Models must be imported so their tables are on Base.metadata
    import src.models  # noqa: F401

    _ensure_sqlite_dir(settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


# Sync engine for the scheduler and the CLI
@lru_cache
def get_sync_engine() -> Engine:
    _ensure_sqlite_dir(settings.sync_database_url)
    return create_engine(settings.sync_database_url)


def get_sync_session() -> Session:
    return Session(get_sync_engine())
