import os
import tempfile
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio

_tmp_dir = tempfile.mkdtemp(prefix="lingomate-test-")
os.environ["LINGOMATE_DATABASE_URL"] = f"sqlite+aiosqlite:///{Path(_tmp_dir) / 'test.db'}"
os.environ["LINGOMATE_FREE_DAILY_REVIEW_LIMIT"] = "1000"

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from lingomate.database import async_session, engine  # noqa: E402
from lingomate.main import app  # noqa: E402
from lingomate.models import Base  # noqa: E402
from lingomate.srs.store import ReviewStore  # noqa: E402


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """A session on a freshly created schema."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    async with async_session() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def store(db: AsyncSession) -> ReviewStore:
    return ReviewStore(db)


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
