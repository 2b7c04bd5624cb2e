"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two token sources are checked in priority order:
  1. JWT cookie ("access_token") -- set by the web UI login flow.
  2. Authorization: Bearer <token> header -- API clients.

try_get_current_user() is the soft variant (returns None on failure).
try_get_identity() builds the Identity consumed by the access-control core,
re-reading the user's role names from the store on every call.
get_current_user() wraps try_get_current_user() and raises HTTP 401.

Layer rule: no imports from access/, api/, or web/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Identity, User
from auth.tokens import decode_access_token


def _extract_token(request: Request) -> str | None:
    token: str | None = request.cookies.get("access_token")
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    return token or None


def try_get_current_user(request: Request) -> User | None:
    """Attempt to authenticate the request via cookie or Bearer header.

    Returns the authenticated User on success, None on any failure. A valid
    token for a user that has since been deleted counts as a failure.
    """
    token = _extract_token(request)
    if not token:
        return None
    payload = decode_access_token(token)
    if not payload:
        return None
    return request.app.state.user_store.get_by_id(payload["user_id"])


def try_get_identity(request: Request) -> Identity | None:
    """Return the caller's Identity (user id + current role names), or None."""
    user = try_get_current_user(request)
    if user is None:
        return None
    roles = request.app.state.user_store.get_role_names(user.id)
    return Identity(user_id=user.id, roles=roles)


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user
