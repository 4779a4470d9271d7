from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Protocol

import jwt

from taskboard.config import settings

SESSION_COOKIE_NAME = "tb_session"
JWT_ALGORITHM = "HS256"


@dataclass
class CookieToSet:
  name: str
  value: str
  max_age: int | None = None
  path: str = "/"
  domain: str | None = None
  secure: bool = False
  http_only: bool = True
  same_site: str = "lax"


class CookieStore(Protocol):
  """Capability set handed to the identity provider; it never sees cookie wire format."""

  def get_all(self) -> list[tuple[str, str]]: ...

  def set_all(self, cookies: list[CookieToSet]) -> None: ...


@dataclass
class SessionClaims:
  user_id: str
  expires_at: int


def issue_session_token(user_id: str, *, now: int | None = None, ttl_seconds: int | None = None, secret: str | None = None) -> str:
  ts = int(now if now is not None else time.time())
  ttl = ttl_seconds if ttl_seconds is not None else settings.session_ttl_days * 86400
  return jwt.encode({"sub": user_id, "iat": ts, "exp": ts + ttl}, secret or settings.app_secret, algorithm=JWT_ALGORITHM)


def verify_session_token(token: str, *, now: int | None = None, secret: str | None = None) -> SessionClaims | None:
  t = (token or "").strip()
  if not t:
    return None
  try:
    # Expiry is compared against `now` below so callers can pin the clock.
    payload = jwt.decode(
      t,
      secret or settings.app_secret,
      algorithms=[JWT_ALGORITHM],
      options={"require": ["sub", "exp"], "verify_exp": False, "verify_iat": False},
    )
  except jwt.InvalidTokenError:
    return None
  user_id = payload.get("sub")
  expires_at = payload.get("exp")
  if not isinstance(user_id, str) or not user_id or not isinstance(expires_at, int):
    return None
  ts = int(now if now is not None else time.time())
  if expires_at <= ts:
    return None
  return SessionClaims(user_id=user_id, expires_at=expires_at)


@dataclass
class SignedSessionProvider:
  """
  Resolves a signed session credential to a user id.

  Cookie sessions past half their lifetime are re-issued through the cookie
  store so active users are not logged out mid-session.
  """

  secret: str
  ttl_seconds: int
  cookie_name: str = SESSION_COOKIE_NAME
  cookie_secure: bool = False
  cookie_domain: str | None = None
  clock: Callable[[], float] = field(default=time.time, repr=False)

  def _now(self) -> int:
    return int(self.clock())

  def issue(self, user_id: str) -> str:
    return issue_session_token(user_id, now=self._now(), ttl_seconds=self.ttl_seconds, secret=self.secret)

  def session_cookie(self, user_id: str) -> CookieToSet:
    return CookieToSet(
      name=self.cookie_name,
      value=self.issue(user_id),
      max_age=self.ttl_seconds,
      domain=self.cookie_domain,
      secure=self.cookie_secure,
    )

  def authenticate(self, cookies: CookieStore, bearer: str | None = None) -> str | None:
    now = self._now()
    session = next((v for k, v in cookies.get_all() if k == self.cookie_name), None)
    if session:
      claims = verify_session_token(session, now=now, secret=self.secret)
      if claims is None:
        return None
      if claims.expires_at - now < self.ttl_seconds // 2:
        cookies.set_all([self.session_cookie(claims.user_id)])
      return claims.user_id
    if bearer:
      claims = verify_session_token(bearer, now=now, secret=self.secret)
      return claims.user_id if claims else None
    return None


def default_identity_provider() -> SignedSessionProvider:
  return SignedSessionProvider(
    secret=settings.app_secret,
    ttl_seconds=settings.session_ttl_days * 86400,
    cookie_secure=settings.cookie_secure,
    cookie_domain=settings.cookie_domain,
  )
