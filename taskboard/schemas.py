from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from taskboard.models import TITLE_MAX_LENGTH

TaskStatus = Literal["todo", "doing", "done"]


def _parse_dt_utc(value: object) -> object:
  if isinstance(value, str):
    s = value.strip()
    if not s:
      return value
    value = datetime.fromisoformat(s.replace("Z", "+00:00"))
  if isinstance(value, datetime) and value.tzinfo is None:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    return value.replace(tzinfo=timezone.utc)
  return value


class TaskCreateIn(BaseModel):
  title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
  status: TaskStatus = "todo"
  position: int = Field(default=0, ge=0)


class TaskUpdateIn(BaseModel):
  title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
  status: TaskStatus | None = None
  position: int | None = Field(default=None, ge=0)

  @field_validator("title", "status", "position", mode="before")
  @classmethod
  def _reject_explicit_null(cls, v: object) -> object:
    # Omit a field to leave it unchanged; null is not a value any column accepts.
    if v is None:
      raise ValueError("Field may be omitted but not null")
    return v

  def changes(self) -> dict[str, object]:
    return {name: getattr(self, name) for name in self.model_fields_set}


class TaskPositionIn(BaseModel):
  id: str
  status: str
  position: int


class TaskPositionsIn(BaseModel):
  updates: list[TaskPositionIn]


class TaskPositionsOut(BaseModel):
  success: bool = True


class TaskOut(BaseModel):
  id: str
  title: str
  # str, not TaskStatus: the positions batch stores whatever status it is sent.
  status: str
  position: int
  userId: str | None = None
  createdAt: datetime
  updatedAt: datetime

  @field_validator("createdAt", "updatedAt", mode="before")
  @classmethod
  def _to_utc(cls, v: object) -> object:
    return _parse_dt_utc(v)


class ValidationIssue(BaseModel):
  path: str
  message: str


class ValidationErrorOut(BaseModel):
  detail: str = "Validation error"
  issues: list[ValidationIssue] = []


class MeOut(BaseModel):
  userId: str


class ClientConfigOut(BaseModel):
  authUrl: str
  sessionCookieName: str
  version: str
