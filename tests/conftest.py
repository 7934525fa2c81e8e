"""Test fixtures — an in-memory database per test plus a clean registry.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (aiosqlite). StaticPool
   keeps the single connection alive, so every session sees the same data.
2. The app's get_db dependency is overridden to hand out that session;
   the Flag type stores plain booleans off MySQL, so the same models work.
3. The session registry and notifier on app.state are replaced per test,
   so no connection leaks from one test into the next.

Tokens are real: guards verify signatures, so tests sign their own.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pinewood.auth.jwt import create_access_token
from pinewood.config import settings
from pinewood.db.engine import get_db
from pinewood.db.models import Base
from pinewood.main import app
from pinewood.realtime.notifier import MutationNotifier
from pinewood.realtime.registry import SessionRegistry

TEST_DB_URL = "sqlite+aiosqlite://"


@pytest.fixture(autouse=True)
def registry():
    """Fresh registry + notifier for every test."""
    app.state.registry = SessionRegistry(queue_size=10)
    app.state.notifier = MutationNotifier(app.state.registry)
    return app.state.registry


@pytest.fixture(autouse=True)
def image_dirs(tmp_path, monkeypatch):
    """Point both photo stores at a temp directory."""
    monkeypatch.setattr(settings, "car_image_dir", str(tmp_path / "cars"))
    monkeypatch.setattr(settings, "checkin_image_dir", str(tmp_path / "checkin"))
    return tmp_path


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a throwaway in-memory database."""
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()
    await engine.dispose()


@pytest_asyncio.fixture()
async def client(db_session):
    """HTTP client with the app's get_db overridden for testing."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def _token(user_id: int, username: str, admin: bool) -> str:
    return create_access_token(
        {"userId": user_id, "username": username, "admin": admin, "eventIds": None}
    )


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {_token(1, 'admin', True)}"}


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {_token(2, 'timer', False)}"}


@pytest.fixture
def listener(registry):
    """A registered session subscribed to every table."""
    session = registry.register()
    registry.subscribe(session.connection_id, ["user", "event", "car"])
    return session


def _drain(session) -> list[dict]:
    """Everything queued on a session's outbox, oldest first."""
    messages = []
    while not session.outbox.empty():
        messages.append(session.outbox.get_nowait())
    return messages


@pytest.fixture
def drain():
    return _drain
