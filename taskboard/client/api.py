from __future__ import annotations

from typing import Any, Callable

import httpx
from pydantic import ValidationError

from taskboard.schemas import ClientConfigOut, TaskOut

ClientConfig = ClientConfigOut


class TaskApiError(RuntimeError):
  def __init__(self, *, status_code: int, message: str, details: dict[str, Any] | None = None) -> None:
    super().__init__(message)
    self.status_code = status_code
    self.message = message
    self.details = details or {}


def _extract_error(payload: Any, fallback: str) -> tuple[str, dict[str, Any]]:
  if isinstance(payload, dict):
    detail = payload.get("detail")
    details = {"issues": payload["issues"]} if isinstance(payload.get("issues"), list) else {}
    if isinstance(detail, str) and detail.strip():
      return detail.strip(), details
    return fallback, details
  if isinstance(payload, str) and payload.strip():
    return payload.strip()[:500], {}
  return fallback, {}


async def _request_json(
  client: httpx.AsyncClient,
  method: str,
  path: str,
  *,
  fallback: str,
  parse: Callable[[Any], Any] | None = None,
  **kwargs: Any,
) -> Any:
  r = await client.request(method, path, **kwargs)
  if r.status_code >= 400:
    try:
      payload = r.json()
    except ValueError:
      payload = (r.text or "")[:800]
    msg, details = _extract_error(payload, fallback)
    raise TaskApiError(status_code=r.status_code, message=msg, details=details)
  if r.status_code == 204:
    return None
  try:
    data = r.json()
    return parse(data) if parse is not None else data
  except (ValidationError, ValueError, TypeError) as exc:
    raise TaskApiError(status_code=r.status_code, message="Invalid response", details={"error": str(exc)[:500]}) from exc


def _task_list(data: Any) -> list[TaskOut]:
  if not isinstance(data, list):
    raise TypeError(f"expected a list of tasks, got {type(data).__name__}")
  return [TaskOut.model_validate(t) for t in data]


class TaskApiClient:
  """
  Thin async client for the /api/tasks surface.

  The session token goes out as a bearer header until a ClientConfig is
  applied, after which it travels as the session cookie the config names.
  """

  def __init__(
    self,
    base_url: str,
    *,
    token: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = 10.0,
  ) -> None:
    self._token = token
    self.config: ClientConfig | None = None
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    self._http = httpx.AsyncClient(base_url=base_url.rstrip("/"), headers=headers, transport=transport, timeout=timeout)

  async def __aenter__(self) -> TaskApiClient:
    return self

  async def __aexit__(self, *exc_info: object) -> None:
    await self.aclose()

  async def aclose(self) -> None:
    await self._http.aclose()

  def use_config(self, config: ClientConfig) -> None:
    self.config = config
    if self._token:
      self._http.headers.pop("Authorization", None)
      self._http.cookies.set(config.sessionCookieName, self._token)

  async def fetch_config(self) -> ClientConfig:
    return await _request_json(
      self._http,
      "GET",
      "/api/config",
      fallback="Failed to fetch client config",
      parse=ClientConfig.model_validate,
    )

  async def list_tasks(self) -> list[TaskOut]:
    return await _request_json(self._http, "GET", "/api/tasks", fallback="Failed to fetch tasks", parse=_task_list)

  async def create_task(self, title: str, status: str = "todo", position: int = 0) -> TaskOut:
    return await _request_json(
      self._http,
      "POST",
      "/api/tasks",
      fallback="Failed to create task",
      parse=TaskOut.model_validate,
      json={"title": title, "status": status, "position": position},
    )

  async def update_task(self, task_id: str, changes: dict[str, Any]) -> TaskOut:
    return await _request_json(
      self._http,
      "PUT",
      f"/api/tasks/{task_id}",
      fallback="Failed to update task",
      parse=TaskOut.model_validate,
      json=changes,
    )

  async def delete_task(self, task_id: str) -> TaskOut:
    return await _request_json(
      self._http,
      "DELETE",
      f"/api/tasks/{task_id}",
      fallback="Failed to delete task",
      parse=TaskOut.model_validate,
    )

  async def update_positions(self, updates: list[dict[str, Any]]) -> None:
    await _request_json(
      self._http,
      "POST",
      "/api/tasks/positions",
      fallback="Failed to update task positions",
      json={"updates": updates},
    )


async def load_client_config(api: TaskApiClient) -> ClientConfig:
  """
  Explicit initialization step: fetch the public config once and apply it.

  Until this runs, `api.config` is None and requests use the bearer header.
  """
  config = await api.fetch_config()
  api.use_config(config)
  return config
