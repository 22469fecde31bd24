"""Identity and reviewer-token dependencies for the booking API.

Identity comes from the portal's auth gateway as two headers:
``X-User-Id`` and ``X-User-Role``.

Reviewer actions (approve / reject) and the live booking feed are also
guarded by a shared reviewer token:
  - require_reviewer_token(): HTTP endpoints (Bearer token in Authorization header)
  - require_reviewer_ws():    WebSocket endpoints (?token= query param)

Behavior matrix:
  REVIEWER_API_KEY set + valid token   → allow
  REVIEWER_API_KEY set + wrong/missing → 401 Unauthorized
  REVIEWER_API_KEY empty + DEBUG=true  → allow (local dev convenience)
  REVIEWER_API_KEY empty + DEBUG=false → 403 Forbidden (locked in production)
"""

from __future__ import annotations

import logging

from fastapi import Depends, Header, HTTPException, Query, WebSocket, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from campus_booking.capabilities import ROLES, Actor
from campus_booking.config import settings

log = logging.getLogger("campus_booking.auth")

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_actor(
    x_user_id: str = Header(default=""),
    x_user_role: str = Header(default=""),
) -> Actor:
    """FastAPI dependency: resolve the caller from gateway headers."""
    user_id = x_user_id.strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header.",
        )

    role = x_user_role.strip().lower() or "student"
    if role not in ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Unknown role {role!r}.",
        )
    return Actor(id=user_id, role=role)


async def require_reviewer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> None:
    """FastAPI dependency: protect reviewer endpoints with bearer token."""
    key = settings.reviewer_api_key

    if not key:
        if settings.debug:
            return  # Local dev, no auth
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Reviewer API key not configured. Set REVIEWER_API_KEY in .env.",
        )

    if credentials is None or credentials.credentials != key:
        log.warning("Rejected reviewer request with missing or invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing reviewer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def require_reviewer_ws(
    websocket: WebSocket,
    token: str = Query(default=""),
) -> bool:
    """WebSocket auth: browsers can't send headers, so use ?token= query param.

    Returns False (after closing the socket) when the caller is refused.
    """
    key = settings.reviewer_api_key

    if not key:
        if settings.debug:
            return True
        await websocket.close(code=4003, reason="Reviewer API key not configured")
        return False

    if token != key:
        await websocket.close(code=4001, reason="Unauthorized")
        return False
    return True
