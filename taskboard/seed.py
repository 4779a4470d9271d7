from __future__ import annotations

import asyncio
import os

from sqlalchemy import select

from taskboard.db import SessionLocal
from taskboard.models import Task
from taskboard.security import issue_session_token
from taskboard.tasks import store

SAMPLES = [
  ("Write the release notes", "todo"),
  ("Review open pull requests", "todo"),
  ("Try dragging a card to another column", "doing"),
  ("Set up the board", "done"),
]


async def seed(user_id: str) -> int:
  async with SessionLocal() as db:
    # Idempotent: only seed an empty board.
    res = await db.execute(select(Task.id).where(Task.user_id == user_id).limit(1))
    if res.scalar_one_or_none():
      return 0
    positions: dict[str, int] = {}
    for title, status in SAMPLES:
      pos = positions.get(status, 0)
      await store.create_task(db, title=title, status=status, position=pos, user_id=user_id)
      positions[status] = pos + 1
    return len(SAMPLES)


def main() -> None:
  user_id = (os.getenv("SEED_USER_ID") or "demo-user").strip()
  created = asyncio.run(seed(user_id))
  print(f"Seeded {created} task(s) for {user_id}")
  print(f"Session token: {issue_session_token(user_id)}")


if __name__ == "__main__":
  main()
