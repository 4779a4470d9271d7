from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.models import Task, new_id, utcnow
from taskboard.schemas import TaskPositionIn

logger = logging.getLogger(__name__)

_UPDATABLE = ("title", "status", "position")


class TaskNotFound(LookupError):
  def __init__(self, task_id: str) -> None:
    super().__init__(f"Task not found: {task_id}")
    self.task_id = task_id


class StoreFailure(RuntimeError):
  """Persistence failed; the message is safe to show to clients."""


async def list_tasks(db: AsyncSession, user_id: str | None = None) -> list[Task]:
  q = select(Task)
  if user_id:
    q = q.where(Task.user_id == user_id)
  q = q.order_by(Task.status.asc(), Task.position.asc(), Task.created_at.asc())
  try:
    res = await db.execute(q)
  except SQLAlchemyError as exc:
    logger.exception("list_tasks failed user_id=%s", user_id)
    raise StoreFailure("Failed to fetch tasks") from exc
  return list(res.scalars().all())


async def get_task(db: AsyncSession, task_id: str, user_id: str | None = None) -> Task | None:
  q = select(Task).where(Task.id == task_id)
  if user_id:
    q = q.where(Task.user_id == user_id)
  try:
    res = await db.execute(q)
  except SQLAlchemyError as exc:
    logger.exception("get_task failed id=%s", task_id)
    raise StoreFailure("Failed to fetch task") from exc
  return res.scalar_one_or_none()


async def create_task(db: AsyncSession, *, title: str, status: str = "todo", position: int = 0, user_id: str | None = None) -> Task:
  now = utcnow()
  t = Task(id=new_id(), title=title, status=status, position=position, user_id=user_id, created_at=now, updated_at=now)
  db.add(t)
  try:
    await db.commit()
  except SQLAlchemyError as exc:
    await db.rollback()
    logger.exception("create_task failed user_id=%s", user_id)
    raise StoreFailure("Failed to create task") from exc
  logger.info("task created id=%s user_id=%s status=%s", t.id, user_id, status)
  return t


async def update_task(db: AsyncSession, task_id: str, changes: dict[str, Any]) -> Task:
  """
  Merge `changes` into the task and bump `updated_at`.

  Not owner-scoped: callers probe ownership with `get_task` first.
  """
  try:
    t = await db.get(Task, task_id)
    if t is None:
      raise TaskNotFound(task_id)
    for key, val in changes.items():
      if key in _UPDATABLE:
        setattr(t, key, val)
    # onupdate only fires for dirty rows; an empty patch still counts as a write.
    t.updated_at = utcnow()
    await db.commit()
  except SQLAlchemyError as exc:
    await db.rollback()
    logger.exception("update_task failed id=%s", task_id)
    raise StoreFailure("Failed to update task") from exc
  return t


async def delete_task(db: AsyncSession, task_id: str) -> Task:
  try:
    t = await db.get(Task, task_id)
    if t is None:
      raise TaskNotFound(task_id)
    await db.delete(t)
    await db.commit()
  except SQLAlchemyError as exc:
    await db.rollback()
    logger.exception("delete_task failed id=%s", task_id)
    raise StoreFailure("Failed to delete task") from exc
  logger.info("task deleted id=%s", task_id)
  return t


async def bulk_reposition(db: AsyncSession, updates: Iterable[TaskPositionIn]) -> int:
  """
  Apply every (id, status, position) triple in one transaction.

  Either the whole batch commits or nothing does; an unknown id aborts the batch.
  Every object the caller loaded through `db` is expired afterwards, on success
  and on failure alike, so read attribute values you still need before calling.
  """
  items = list(updates)
  now = utcnow()
  try:
    for u in items:
      res = await db.execute(
        update(Task)
        .where(Task.id == u.id)
        .values(status=u.status, position=u.position, updated_at=now)
        .execution_options(synchronize_session=False)
      )
      if res.rowcount == 0:
        raise TaskNotFound(u.id)
    await db.commit()
  except TaskNotFound as exc:
    await db.rollback()
    logger.warning("bulk_reposition rolled back: unknown task id=%s batch_size=%s", exc.task_id, len(items))
    raise StoreFailure("Failed to update task positions") from exc
  except SQLAlchemyError as exc:
    await db.rollback()
    logger.exception("bulk_reposition failed batch_size=%s", len(items))
    raise StoreFailure("Failed to update task positions") from exc
  # Rows updated above bypass the identity map.
  db.expire_all()
  logger.info("tasks repositioned count=%s", len(items))
  return len(items)
