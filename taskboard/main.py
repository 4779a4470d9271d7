from __future__ import annotations

import logging
from time import monotonic

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware

from taskboard.config import settings
from taskboard.logging_setup import setup_logging
from taskboard.routers.session import router as session_router
from taskboard.routers.tasks import router as tasks_router
from taskboard.schemas import ValidationErrorOut, ValidationIssue
from taskboard.security import default_identity_provider
from taskboard.tasks.store import StoreFailure, TaskNotFound

logger = logging.getLogger(__name__)

app = FastAPI(
  title="Taskboard API",
  version="0.1.0",
  docs_url="/docs" if settings.api_docs_enabled else None,
  redoc_url="/redoc" if settings.api_docs_enabled else None,
  openapi_url="/openapi.json" if settings.api_docs_enabled else None,
)
app.state.identity_provider = default_identity_provider()


def _issue_path(loc: tuple) -> str:
  parts = [str(p) for p in loc]
  if parts and parts[0] == "body":
    parts = parts[1:]
  return ".".join(parts)


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(_, exc: RequestValidationError) -> JSONResponse:
  issues = [ValidationIssue(path=_issue_path(tuple(e.get("loc", ()))), message=str(e.get("msg", ""))) for e in exc.errors()]
  return JSONResponse(status_code=400, content=ValidationErrorOut(issues=issues).model_dump())


@app.exception_handler(TaskNotFound)
async def _task_not_found_handler(_, exc: TaskNotFound) -> JSONResponse:
  return JSONResponse(status_code=404, content={"detail": "Task not found"})


@app.exception_handler(StoreFailure)
async def _store_failure_handler(_, exc: StoreFailure) -> JSONResponse:
  # Already logged with traceback where it was raised.
  return JSONResponse(status_code=500, content={"detail": str(exc)})


app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.cors_origin_list(),
  allow_origin_regex=settings.cors_origin_regex,
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_host_list())

app.include_router(session_router)
app.include_router(tasks_router)


@app.middleware("http")
async def _request_log_middleware(request: Request, call_next):
  start = monotonic()
  response = await call_next(request)
  elapsed_ms = (monotonic() - start) * 1000.0
  logger.debug("%s %s -> %s in %.1fms", request.method, request.url.path, response.status_code, elapsed_ms)
  response.headers.setdefault("X-Content-Type-Options", "nosniff")
  response.headers.setdefault("X-Frame-Options", "DENY")
  response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
  return response


@app.get("/health")
async def health() -> dict:
  return {"ok": True}


@app.get("/version")
async def version() -> dict:
  return {"version": settings.app_version, "buildSha": settings.build_sha}


@app.on_event("startup")
async def _startup() -> None:
  setup_logging(level=settings.log_level, log_file=settings.log_file)
  if settings.is_test_db():
    return
  if not settings.app_secret or settings.app_secret.strip().lower() in {"dev-secret-change-me", "replace_with_strong_random_secret"}:
    raise RuntimeError("APP_SECRET is required and must not be a placeholder")
  logger.info("taskboard api started version=%s build=%s", settings.app_version, settings.build_sha)
