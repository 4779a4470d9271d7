from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

import httpx

from taskboard.client.api import TaskApiClient, TaskApiError
from taskboard.client.drag import DropTarget
from taskboard.schemas import TaskOut
from taskboard.tasks.ordering import plan_move

logger = logging.getLogger(__name__)

_FAILURES = (TaskApiError, httpx.HTTPError)


def _error_message(exc: Exception) -> str:
  if isinstance(exc, TaskApiError):
    return exc.message
  return str(exc) or type(exc).__name__


class TaskCollection:
  """Local mirror of the task list: optimistic apply, commit server truth, replace on resync."""

  def __init__(self, tasks: Iterable[TaskOut] = ()) -> None:
    self._tasks: list[TaskOut] = list(tasks)

  def snapshot(self) -> list[TaskOut]:
    return list(self._tasks)

  def get(self, task_id: str) -> TaskOut | None:
    return next((t for t in self._tasks if t.id == task_id), None)

  def apply_optimistic(self, fn: Callable[[TaskOut], TaskOut | None]) -> None:
    # fn returns the replacement, or None to keep the task as-is.
    self._tasks = [fn(t) or t for t in self._tasks]

  def commit(self, task: TaskOut) -> None:
    for i, t in enumerate(self._tasks):
      if t.id == task.id:
        self._tasks[i] = task
        return
    self._tasks.append(task)

  def remove(self, task_id: str) -> None:
    self._tasks = [t for t in self._tasks if t.id != task_id]

  def replace_all(self, tasks: Iterable[TaskOut]) -> None:
    self._tasks = list(tasks)


class TaskStateController:
  """
  Keeps a TaskCollection in step with the server under optimistic updates.

  Every failed mutation records `error` and ends in a full re-fetch; nothing
  is patched back piecemeal. After `close()` the results of fetches still in
  flight are dropped.
  """

  def __init__(self, api: TaskApiClient, *, clock: Callable[[], datetime] | None = None) -> None:
    self.api = api
    self.collection = TaskCollection()
    self.loading = False
    self.error: str | None = None
    self._active = True
    self._clock = clock or (lambda: datetime.now(timezone.utc))

  @property
  def tasks(self) -> list[TaskOut]:
    return self.collection.snapshot()

  @property
  def active(self) -> bool:
    return self._active

  def close(self) -> None:
    self._active = False

  def tasks_by_status(self) -> dict[str, list[TaskOut]]:
    grouped: dict[str, list[TaskOut]] = {"todo": [], "doing": [], "done": []}
    for t in self.collection.snapshot():
      if t.status in grouped:
        grouped[t.status].append(t)
    return grouped

  async def fetch_tasks(self, *, show_loading: bool = True, clear_error: bool = True) -> None:
    if show_loading:
      self.loading = True
    if clear_error:
      self.error = None
    try:
      tasks = await self.api.list_tasks()
      if not self._active:
        return
      self.collection.replace_all(tasks)
    except _FAILURES as exc:
      if not self._active:
        return
      logger.warning("task fetch failed: %s", exc)
      self.error = _error_message(exc)
    finally:
      if show_loading and self._active:
        self.loading = False

  async def _fail_and_resync(self, exc: Exception, action: str) -> None:
    logger.warning("%s failed, resyncing: %s", action, exc)
    self.error = _error_message(exc)
    await self.fetch_tasks(show_loading=False, clear_error=False)

  async def create_task(self, title: str, status: str = "todo") -> TaskOut | None:
    try:
      task = await self.api.create_task(title, status, 0)
    except _FAILURES as exc:
      await self._fail_and_resync(exc, "create_task")
      return None
    # Only the confirmed row is added; there is no placeholder while in flight.
    self.collection.commit(task)
    return task

  async def update_task(self, task_id: str, changes: dict[str, Any]) -> TaskOut | None:
    stamp = self._clock()
    self.collection.apply_optimistic(
      lambda t: t.model_copy(update={**changes, "updatedAt": stamp}) if t.id == task_id else None
    )
    try:
      task = await self.api.update_task(task_id, changes)
    except _FAILURES as exc:
      await self._fail_and_resync(exc, "update_task")
      return None
    self.collection.commit(task)
    return task

  async def delete_task(self, task_id: str) -> bool:
    try:
      await self.api.delete_task(task_id)
    except _FAILURES as exc:
      await self._fail_and_resync(exc, "delete_task")
      return False
    self.collection.remove(task_id)
    return True

  async def update_task_positions(self, updates: list[dict[str, Any]]) -> bool:
    by_id = {u["id"]: u for u in updates}
    self.collection.apply_optimistic(
      lambda t: t.model_copy(update={"status": by_id[t.id]["status"], "position": by_id[t.id]["position"]}) if t.id in by_id else None
    )
    try:
      await self.api.update_positions(updates)
    except _FAILURES as exc:
      await self._fail_and_resync(exc, "update_task_positions")
      return False
    return True

  async def move_task(self, task_id: str, status: str, index: int) -> bool:
    updates = plan_move(self.collection.snapshot(), task_id, status, index)
    if not updates:
      return True
    return await self.update_task_positions(updates)

  async def apply_drop(self, target: DropTarget | None) -> TaskOut | None:
    if target is None:
      return None
    changes: dict[str, Any] = {"status": target.status}
    if target.position is not None:
      changes["position"] = target.position
    return await self.update_task(target.task_id, changes)
