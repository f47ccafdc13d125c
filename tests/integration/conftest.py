"""Integration-test fixtures.

HTTP tests drive the real app through httpx's ASGITransport with the DB
session dependency pointed at a fresh in-memory database per test. The
lifespan is not run there. WebSocket tests use Starlette's TestClient, whose
lifespan creates the schema on the app's own (in-memory) engine.

Router services publish on the process-wide EventBus and lock through the
process-wide PlayerLockRegistry, so every test uses its own club and player ids.
"""

from collections.abc import AsyncGenerator, Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.cc_common.database import create_schema, get_db_session, make_engine
from src.cc_common.enums import Role
from src.cc_common.id_generator import generate_id
from src.cc_gateway.auth.jwt_handler import create_access_token
from src.main import app

AuthHeaders = Callable[..., dict[str, str]]


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    eng = make_engine("sqlite+aiosqlite://")
    await create_schema(eng)
    factory = async_sessionmaker(eng, class_=AsyncSession, expire_on_commit=False)

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    await eng.dispose()


@pytest.fixture
def ws_client() -> Iterator[TestClient]:
    with TestClient(app) as tc:
        yield tc


@pytest.fixture
def club_id() -> str:
    return generate_id("club")


@pytest.fixture
def player_id() -> str:
    return generate_id("plr")


@pytest.fixture
def auth(club_id: str) -> AuthHeaders:
    """auth(role, actor_id=None) → Authorization header for an actor in this test's club."""

    def _headers(role: Role, actor_id: str | None = None, club: str | None = None) -> dict[str, str]:
        token = create_access_token(actor_id or generate_id(role.value), role, club or club_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
