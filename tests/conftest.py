import os
import tempfile
from contextlib import contextmanager

# Must be set before anything from daily is imported
_test_dir = tempfile.mkdtemp(prefix="daily_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_test_dir}/daily_test.db"
os.environ["TIMEZONE"] = "UTC"
os.environ["ENABLE_RATE_LIMIT"] = "0"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import Depends  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from daily.core.database.models import Base  # noqa: E402
from daily.core.types import UserId  # noqa: E402


@pytest_asyncio.fixture
async def engine():
    from daily.core.database.engine import engine

    yield engine
    await engine.dispose()


@pytest.fixture(scope="session")
def app():
    from daily.main import app as main_app

    return main_app


@pytest_asyncio.fixture
async def create(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def session(engine, create):
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture
async def client(app, create):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides = {}


@contextmanager
def _request_as(user_id: UserId):
    """Authenticate API requests as the given user without going through a session token."""
    from daily.features.stores import get_user_store
    from daily.features.users.dependencies import get_caller_user
    from daily.features.users.user_store import UserStore
    from daily.main import app as main_app

    async def get_user(user_store: UserStore = Depends(get_user_store)):
        return await user_store.get_user(user_id)

    main_app.dependency_overrides[get_caller_user] = get_user
    yield
    main_app.dependency_overrides = {}


@pytest.fixture
def request_as():
    return _request_as
