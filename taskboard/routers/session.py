from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from taskboard.config import settings
from taskboard.deps import get_current_user_id
from taskboard.schemas import ClientConfigOut, MeOut
from taskboard.security import SESSION_COOKIE_NAME

router = APIRouter(prefix="/api", tags=["session"])


@router.get("/me", response_model=MeOut)
async def me(user_id: str = Depends(get_current_user_id)) -> MeOut:
  return MeOut(userId=user_id)


@router.get("/config", response_model=ClientConfigOut)
async def client_config(response: Response) -> ClientConfigOut:
  # Only public values; secrets never leave the server.
  if not settings.auth_url:
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Auth configuration is not set")
  response.headers["Cache-Control"] = "public, s-maxage=3600, stale-while-revalidate=86400"
  return ClientConfigOut(authUrl=settings.auth_url, sessionCookieName=SESSION_COOKIE_NAME, version=settings.app_version)
