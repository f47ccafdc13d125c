"""Shared test fixtures.

Every test gets its own in-memory SQLite database and its own EventBus, so
services under test are built with explicit collaborators instead of the
module-level singletons used by the routers.
"""

import os

# Must be set before config.settings is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REALTIME_BACKEND", "memory")

from collections.abc import AsyncGenerator, Iterator  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

from src.cc_common.database import create_schema, make_engine  # noqa: E402
from src.cc_common.locks import PlayerLockRegistry  # noqa: E402
from src.cc_realtime.application.notifier import Notifier  # noqa: E402
from src.cc_realtime.bus.event_bus import Connection, EventBus  # noqa: E402
from src.cc_realtime.domain.models import EventEnvelope  # noqa: E402


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    eng = make_engine("sqlite+aiosqlite://")
    await create_schema(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def bus() -> EventBus:
    return EventBus(queue_size=64)


@pytest.fixture
def notifier(bus: EventBus) -> Notifier:
    return Notifier(bus)


@pytest.fixture
def locks() -> PlayerLockRegistry:
    return PlayerLockRegistry()


class EventRecorder:
    """A bus connection that collects what was published on the watched topics."""

    def __init__(self, bus: EventBus, conn: Connection) -> None:
        self._bus = bus
        self._conn = conn
        self._seen: list[EventEnvelope] = []

    def watch(self, *topics: str) -> "EventRecorder":
        for topic in topics:
            self._bus.subscribe(self._conn, topic)
        return self

    def events(self, event_type: str | None = None) -> list[EventEnvelope]:
        self._seen.extend(self._conn.pending())
        if event_type is None:
            return list(self._seen)
        return [e for e in self._seen if e.event == event_type]


@pytest.fixture
def recorder(bus: EventBus) -> Iterator[EventRecorder]:
    conn = bus.connect()
    yield EventRecorder(bus, conn)
    bus.disconnect(conn)
