from __future__ import annotations

import logging
import sys
from pathlib import Path


class _ConsoleNoiseFilter(logging.Filter):
  """
  Keep taskboard logs; let third-party loggers through only at WARNING+.

  uvicorn's own loggers are the exception since they carry the access log.
  """

  def filter(self, record: logging.LogRecord) -> bool:
    name = record.name
    if name == "taskboard" or name.startswith("taskboard."):
      return True
    if name.startswith("uvicorn"):
      return True
    if name == "py.warnings":
      return record.levelno >= logging.ERROR
    return record.levelno >= logging.WARNING


def setup_logging(*, level: str | int = logging.INFO, log_file: str | Path | None = None) -> None:
  """Configure the root logger once, early in process startup."""
  console_level = logging.getLevelName(level.upper()) if isinstance(level, str) else level
  if not isinstance(console_level, int):
    console_level = logging.INFO

  root = logging.getLogger()
  root.setLevel(logging.DEBUG)
  for h in list(root.handlers):
    root.removeHandler(h)

  fmt = logging.Formatter(
    fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
  )

  ch = logging.StreamHandler(sys.stderr)
  ch.setLevel(console_level)
  ch.setFormatter(fmt)
  ch.addFilter(_ConsoleNoiseFilter())
  root.addHandler(ch)

  if log_file:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(str(path), encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(fmt)
    root.addHandler(fh)

  logging.captureWarnings(True)
