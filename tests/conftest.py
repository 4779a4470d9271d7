from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{Path(tempfile.gettempdir()) / 'taskboard_test.db'}")
os.environ.setdefault("APP_SECRET", "taskboard-test-signing-key-0123456789")

from taskboard.client.api import TaskApiClient
from taskboard.config import settings
from taskboard.db import SessionLocal, engine
from taskboard.main import app
from taskboard.models import Base
from taskboard.security import SESSION_COOKIE_NAME, issue_session_token


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


async def _reset_db() -> None:
  if not settings.is_test_db():
    raise RuntimeError(
      "Refusing to run destructive tests against non-test DB. "
      "Set DATABASE_URL to a *_test database (e.g. taskboard_test)."
    )
  async with engine.begin() as conn:
    await conn.run_sync(Base.metadata.drop_all)
    await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
async def db_reset() -> None:
  await _reset_db()
  yield
  await engine.dispose()


@pytest.fixture
async def client(db_reset) -> AsyncClient:
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c


@pytest.fixture
async def db(db_reset):
  async with SessionLocal() as session:
    yield session


@pytest.fixture
async def api(db_reset) -> TaskApiClient:
  async with TaskApiClient("http://localhost", token=issue_session_token("u1"), transport=ASGITransport(app=app)) as c:
    yield c


def bearer(user_id: str) -> dict[str, str]:
  return {"Authorization": f"Bearer {issue_session_token(user_id)}"}


def login(client: AsyncClient, user_id: str) -> str:
  token = issue_session_token(user_id)
  client.cookies.set(SESSION_COOKIE_NAME, token)
  return token


async def create_task(client: AsyncClient, user_id: str, title: str, **fields) -> dict:
  res = await client.post("/api/tasks", json={"title": title, **fields}, headers=bearer(user_id))
  assert res.status_code == 201, res.text
  return res.json()
