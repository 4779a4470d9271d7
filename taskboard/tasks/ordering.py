from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Protocol


class Positioned(Protocol):
  id: str
  status: str
  position: int


def column(tasks: Iterable[Positioned], status: str) -> list[Any]:
  return sorted((t for t in tasks if t.status == status), key=lambda t: t.position)


def plan_move(tasks: Sequence[Positioned], task_id: str, status: str, index: int) -> list[dict[str, Any]]:
  """
  Reposition batch for moving `task_id` to `index` within the `status` column.

  Both the source and the target column are renumbered densely from 0, so the
  gap left behind is closed. Only entries whose status or position actually
  change are returned; an unknown task id yields an empty batch.
  """
  moving = next((t for t in tasks if t.id == task_id), None)
  if moving is None:
    return []

  target = [t for t in column(tasks, status) if t.id != task_id]
  idx = min(max(index, 0), len(target))
  target.insert(idx, moving)

  planned: dict[str, tuple[str, int]] = {t.id: (status, pos) for pos, t in enumerate(target)}
  if moving.status != status:
    source = [t for t in column(tasks, moving.status) if t.id != task_id]
    for pos, t in enumerate(source):
      planned[t.id] = (moving.status, pos)

  by_id = {t.id: t for t in tasks}
  out: list[dict[str, Any]] = []
  for tid, (st, pos) in planned.items():
    cur = by_id[tid]
    if cur.status != st or cur.position != pos:
      out.append({"id": tid, "status": st, "position": pos})
  return out
