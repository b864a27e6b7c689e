"""Supabase JWT validation dependencies for FastAPI."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from app.config import settings
from app.db.supabase_client import get_anon_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str = "candidate"
    name: str = ""
    email: Optional[str] = None


async def verify_jwt(authorization: str = Header(None)) -> CurrentUser:
    """Validate Supabase JWT from Authorization header.

    Returns the authenticated user; the role comes from the token's app
    metadata, then user metadata, defaulting to candidate.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid token")

    token = authorization.replace("Bearer ", "")
    try:
        client = get_anon_client()
        user_response = await asyncio.to_thread(client.auth.get_user, token)
        user = user_response.user
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid token")
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid token")

    app_meta = user.app_metadata or {}
    user_meta = user.user_metadata or {}
    return CurrentUser(
        id=user.id,
        role=app_meta.get("role") or user_meta.get("role") or "candidate",
        name=user_meta.get("name") or user_meta.get("full_name") or "",
        email=user.email,
    )


async def authenticate_request(request: Request) -> CurrentUser:
    """Authenticated caller for this request, resolved once and cached on request.state.

    AUTH_MODE=dev trusts the X-User-Id/X-User-Role headers.
    """
    user = getattr(request.state, "current_user", None)
    if user is not None:
        return user
    if settings.auth_mode == "dev":
        user_id = request.headers.get("x-user-id")
        if not user_id:
            raise HTTPException(status_code=401, detail="Missing X-User-Id header")
        user = CurrentUser(id=user_id, role=request.headers.get("x-user-role") or "candidate")
    else:
        user = await verify_jwt(request.headers.get("authorization"))
    request.state.current_user = user
    return user


async def get_current_user(request: Request) -> CurrentUser:
    return await authenticate_request(request)


def require_role(*roles: str):
    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency
