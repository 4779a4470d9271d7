from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from taskboard.models import TASK_STATUSES
from taskboard.schemas import TaskOut

COLUMN_PREFIX = "column-"


@dataclass(frozen=True)
class Idle:
  pass


@dataclass(frozen=True)
class Dragging:
  task: TaskOut


@dataclass(frozen=True)
class DraggingOverColumn:
  task: TaskOut
  target_status: str


DragState = Idle | Dragging | DraggingOverColumn


@dataclass(frozen=True)
class DropTarget:
  task_id: str
  status: str
  position: int | None = None


def column_id(status: str) -> str:
  return f"{COLUMN_PREFIX}{status}"


def _resolve(over_id: str | None, tasks: Sequence[TaskOut]) -> tuple[str, int | None] | None:
  """Map a drop zone id to (status, position); position is None for a bare column."""
  if not over_id:
    return None
  if over_id.startswith(COLUMN_PREFIX):
    status = over_id[len(COLUMN_PREFIX):]
    return (status, None) if status in TASK_STATUSES else None
  card = next((t for t in tasks if t.id == over_id), None)
  if card is None:
    return None
  return card.status, card.position


class DragReducer:
  """
  Turns drag start/over/end events into a drop target.

  Pure state machine: no I/O. Hover only produces a preview; the caller feeds
  the DropTarget from `end` to TaskStateController.apply_drop.
  """

  def __init__(self) -> None:
    self.state: DragState = Idle()

  @property
  def preview(self) -> TaskOut | None:
    s = self.state
    if isinstance(s, DraggingOverColumn):
      return s.task.model_copy(update={"status": s.target_status})
    if isinstance(s, Dragging):
      return s.task
    return None

  def start(self, task_id: str, tasks: Sequence[TaskOut]) -> DragState:
    task = next((t for t in tasks if t.id == task_id), None)
    self.state = Dragging(task) if task is not None else Idle()
    return self.state

  def over(self, over_id: str | None, tasks: Sequence[TaskOut]) -> DragState:
    s = self.state
    if isinstance(s, Idle):
      return s
    resolved = _resolve(over_id, tasks)
    if resolved is None:
      return s
    status, _ = resolved
    if status != s.task.status:
      self.state = DraggingOverColumn(s.task, status)
    else:
      self.state = Dragging(s.task)
    return self.state

  def end(self, over_id: str | None, tasks: Sequence[TaskOut]) -> DropTarget | None:
    s = self.state
    self.state = Idle()
    if isinstance(s, Idle):
      return None
    resolved = _resolve(over_id, tasks)
    if resolved is None:
      return None
    status, position = resolved
    current = next((t for t in tasks if t.id == s.task.id), s.task)
    # Same-column drops issue no mutation.
    if status == current.status:
      return None
    # A card drop reuses that card's position, so the target column can hold
    # two cards at one position. move_task renumbers a column densely.
    return DropTarget(task_id=s.task.id, status=status, position=position)

  def cancel(self) -> None:
    self.state = Idle()
