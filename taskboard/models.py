from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

TASK_STATUSES: tuple[str, ...] = ("todo", "doing", "done")
TITLE_MAX_LENGTH = 200


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


def new_id() -> str:
  return str(uuid.uuid4())


class Base(DeclarativeBase):
  pass


class Task(Base):
  __tablename__ = "tasks"
  __table_args__ = (Index("ix_tasks_user_status_position", "user_id", "status", "position"),)

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
  title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, default="todo")
  position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  # Nullable for legacy rows created before ownership existed.
  user_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
