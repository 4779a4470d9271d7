from __future__ import annotations

from datetime import datetime

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import bearer, create_task, login
from taskboard.db import SessionLocal
from taskboard.models import Task


def _dt(value: str) -> datetime:
  return datetime.fromisoformat(value.replace("Z", "+00:00"))


async def _task_count() -> int:
  async with SessionLocal() as db:
    return (await db.execute(select(func.count()).select_from(Task))).scalar_one()


@pytest.mark.anyio
async def test_create_update_then_reposition_flow(client: AsyncClient) -> None:
  login(client, "u1")
  res = await client.post("/api/tasks", json={"title": "Write spec", "status": "todo", "position": 0})
  assert res.status_code == 201, res.text
  task = res.json()
  assert task["status"] == "todo"
  assert task["title"] == "Write spec"
  assert task["userId"] == "u1"

  upd = await client.put(f"/api/tasks/{task['id']}", json={"status": "doing"})
  assert upd.status_code == 200, upd.text
  assert upd.json()["status"] == "doing"
  assert upd.json()["title"] == "Write spec"

  pos = await client.post("/api/tasks/positions", json={"updates": [{"id": task["id"], "status": "done", "position": 0}]})
  assert pos.status_code == 200, pos.text
  assert pos.json() == {"success": True}

  listed = (await client.get("/api/tasks")).json()
  assert [(t["id"], t["status"], t["position"]) for t in listed] == [(task["id"], "done", 0)]


@pytest.mark.anyio
async def test_create_applies_defaults_and_fresh_ids(client: AsyncClient) -> None:
  a = await create_task(client, "u1", "First")
  b = await create_task(client, "u1", "Second")
  assert a["status"] == "todo"
  assert a["position"] == 0
  assert a["id"] != b["id"]
  _dt(a["createdAt"])


@pytest.mark.anyio
async def test_create_ignores_client_declared_owner(client: AsyncClient) -> None:
  task = await create_task(client, "u1", "Mine", userId="someone-else")
  assert task["userId"] == "u1"


@pytest.mark.anyio
@pytest.mark.parametrize(
  "payload,path",
  [
    ({"title": ""}, "title"),
    ({"title": "x" * 201}, "title"),
    ({}, "title"),
    ({"title": "ok", "status": "archived"}, "status"),
    ({"title": "ok", "position": -1}, "position"),
  ],
)
async def test_create_rejects_invalid_payload_without_store_call(client: AsyncClient, payload: dict, path: str) -> None:
  res = await client.post("/api/tasks", json=payload, headers=bearer("u1"))
  assert res.status_code == 400, res.text
  body = res.json()
  assert body["detail"] == "Validation error"
  assert path in [i["path"] for i in body["issues"]]
  assert all(i["message"] for i in body["issues"])
  assert await _task_count() == 0


@pytest.mark.anyio
async def test_title_of_exactly_200_chars_is_accepted(client: AsyncClient) -> None:
  task = await create_task(client, "u1", "x" * 200)
  assert len(task["title"]) == 200


@pytest.mark.anyio
async def test_unauthenticated_requests_are_rejected_before_validation(client: AsyncClient) -> None:
  assert (await client.get("/api/tasks")).status_code == 401
  assert (await client.post("/api/tasks", json={"title": ""})).status_code == 401
  assert (await client.put("/api/tasks/nope", json={"status": "bogus"})).status_code == 401
  assert (await client.delete("/api/tasks/nope")).status_code == 401
  assert (await client.post("/api/tasks/positions", json={"updates": "bad"})).status_code == 401
  res = await client.get("/api/tasks", headers={"Authorization": "Bearer not-a-token"})
  assert res.status_code == 401
  assert await _task_count() == 0


@pytest.mark.anyio
async def test_list_is_scoped_to_the_session_user(client: AsyncClient) -> None:
  await create_task(client, "u1", "Mine")
  await create_task(client, "u2", "Theirs")
  res = await client.get("/api/tasks", headers=bearer("u1"))
  assert res.status_code == 200
  assert [t["title"] for t in res.json()] == ["Mine"]


@pytest.mark.anyio
async def test_list_orders_by_status_then_position(client: AsyncClient) -> None:
  await create_task(client, "u1", "todo-1", status="todo", position=1)
  await create_task(client, "u1", "todo-0", status="todo", position=0)
  await create_task(client, "u1", "done-0", status="done", position=0)
  await create_task(client, "u1", "doing-0", status="doing", position=0)
  titles = [t["title"] for t in (await client.get("/api/tasks", headers=bearer("u1"))).json()]
  assert titles == ["doing-0", "done-0", "todo-0", "todo-1"]


@pytest.mark.anyio
async def test_update_nonexistent_or_foreign_task_is_not_found(client: AsyncClient) -> None:
  theirs = await create_task(client, "u2", "Theirs")

  missing = await client.put("/api/tasks/does-not-exist", json={"title": "x"}, headers=bearer("u1"))
  assert missing.status_code == 404
  assert missing.json()["detail"] == "Task not found"

  foreign = await client.put(f"/api/tasks/{theirs['id']}", json={"title": "hijacked"}, headers=bearer("u1"))
  assert foreign.status_code == 404

  listed = (await client.get("/api/tasks", headers=bearer("u2"))).json()
  assert listed[0]["title"] == "Theirs"
  assert listed[0]["updatedAt"] == theirs["updatedAt"]


@pytest.mark.anyio
async def test_update_validates_fields(client: AsyncClient) -> None:
  task = await create_task(client, "u1", "Task")
  for payload in ({"title": ""}, {"status": "later"}, {"position": -3}, {"title": None}):
    res = await client.put(f"/api/tasks/{task['id']}", json=payload, headers=bearer("u1"))
    assert res.status_code == 400, payload


@pytest.mark.anyio
async def test_empty_update_only_refreshes_updated_at(client: AsyncClient) -> None:
  task = await create_task(client, "u1", "Stable", status="doing", position=3)
  res = await client.put(f"/api/tasks/{task['id']}", json={}, headers=bearer("u1"))
  assert res.status_code == 200, res.text
  out = res.json()
  for key in ("id", "title", "status", "position", "userId"):
    assert out[key] == task[key]
  assert _dt(out["updatedAt"]) > _dt(task["updatedAt"])


@pytest.mark.anyio
async def test_delete_returns_record_then_not_found(client: AsyncClient) -> None:
  task = await create_task(client, "u1", "Short-lived")
  first = await client.delete(f"/api/tasks/{task['id']}", headers=bearer("u1"))
  assert first.status_code == 200, first.text
  assert first.json()["id"] == task["id"]
  assert first.json()["title"] == "Short-lived"

  second = await client.delete(f"/api/tasks/{task['id']}", headers=bearer("u1"))
  assert second.status_code == 404
  assert await _task_count() == 0


@pytest.mark.anyio
async def test_delete_foreign_task_is_not_found(client: AsyncClient) -> None:
  theirs = await create_task(client, "u2", "Theirs")
  res = await client.delete(f"/api/tasks/{theirs['id']}", headers=bearer("u1"))
  assert res.status_code == 404
  assert await _task_count() == 1


@pytest.mark.anyio
async def test_store_failure_is_generic_500(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
  async def _boom(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("connection refused to db:5432"))

  monkeypatch.setattr(AsyncSession, "execute", _boom)
  res = await client.get("/api/tasks", headers=bearer("u1"))
  assert res.status_code == 500
  assert res.json() == {"detail": "Failed to fetch tasks"}
  assert "5432" not in res.text
