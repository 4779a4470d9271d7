from __future__ import annotations

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db import SessionLocal
from taskboard.security import CookieToSet, SignedSessionProvider


async def get_db() -> AsyncSession:
  async with SessionLocal() as session:
    yield session


class ResponseCookies:
  """Cookie capability set backed by the current request/response pair."""

  def __init__(self, request: Request, response: Response) -> None:
    self._request = request
    self._response = response

  def get_all(self) -> list[tuple[str, str]]:
    return list(self._request.cookies.items())

  def set_all(self, cookies: list[CookieToSet]) -> None:
    for c in cookies:
      self._response.set_cookie(
        c.name,
        c.value,
        max_age=c.max_age,
        path=c.path,
        domain=c.domain,
        secure=c.secure,
        httponly=c.http_only,
        samesite=c.same_site,
      )


def get_identity_provider(request: Request) -> SignedSessionProvider:
  return request.app.state.identity_provider


def _bearer_token(request: Request) -> str | None:
  auth = request.headers.get("authorization")
  if auth and auth.lower().startswith("bearer "):
    return auth.split(" ", 1)[1].strip() or None
  return None


async def get_current_user_id(
  request: Request,
  response: Response,
  provider: SignedSessionProvider = Depends(get_identity_provider),
) -> str:
  user_id = provider.authenticate(ResponseCookies(request, response), _bearer_token(request))
  if not user_id:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
  return user_id
