# ──── Usage Guide ────
# Pattern: async with get_async_db() as session:
#              result = await session.execute(select(Model).where(...))
#
# Components take an optional session factory so tests can point them at
# a throwaway SQLite database; production code uses async_session_factory.

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from scout.core.config import settings


class ToDictMixin:
    """Mixin to add dictionary serialization to models."""
    def to_dict(self):
        """Convert model instance to dictionary."""
        from sqlalchemy import inspect
        import datetime
        from enum import Enum

        result = {}
        for key in inspect(self).mapper.column_attrs.keys():
            value = getattr(self, key)
            if isinstance(value, (datetime.datetime, datetime.date)):
                result[key] = value.isoformat()
            elif isinstance(value, Enum):
                result[key] = value.value
            else:
                result[key] = value
        return result


class Base(ToDictMixin, DeclarativeBase):
    metadata = MetaData()


def normalize_db_url(url: str) -> str:
    """Force async drivers onto bare postgresql:// and sqlite:// URLs."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://") and "aiosqlite" not in url:
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def make_session_factory(url: str) -> async_sessionmaker:
    """Build an engine plus session factory for an arbitrary database URL."""
    db_engine = create_async_engine(normalize_db_url(url), echo=False, future=True)
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


# ──── Single Async Engine ────
async_session_factory = make_session_factory(settings.database_url)
engine = async_session_factory.kw["bind"]


@asynccontextmanager
async def get_async_db(session_factory: async_sessionmaker = None) -> AsyncIterator[AsyncSession]:
    """Session that commits on success and rolls back on error."""
    async with (session_factory or async_session_factory)() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(session_factory: async_sessionmaker = None) -> None:
    """Create all tables registered on Base.metadata."""
    # Import models so they register on the metadata
    import scout.ingestion.database  # noqa: F401

    factory = session_factory or async_session_factory
    db_engine = factory.kw["bind"]
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
