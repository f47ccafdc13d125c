from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from config.settings import settings


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models across modules."""

    pass


def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; SQLite gets a single shared connection when in-memory."""
    kwargs: dict[str, Any] = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url.rstrip("/").endswith("aiosqlite:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_size"] = 20
        kwargs["max_overflow"] = 10
    return create_async_engine(url, **kwargs)


engine: AsyncEngine = make_engine(settings.DATABASE_URL, echo=settings.DEBUG)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def create_schema(target: AsyncEngine) -> None:
    """Create all tables from ORM metadata (dev SQLite and tests; production uses Alembic)."""
    # Import ORM modules so every table is registered on Base.metadata
    import src.cc_disbursement.infrastructure.db_models  # noqa: F401
    import src.cc_floor.infrastructure.db_models  # noqa: F401
    import src.cc_ledger.infrastructure.db_models  # noqa: F401
    import src.cc_requests.infrastructure.db_models  # noqa: F401

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    async with async_session_factory() as session:
        yield session
