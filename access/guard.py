"""
access/guard.py -- Page guard for protected routes.

check_page_access() is the decision: no identity -> UNAUTHENTICATED, denied ->
UNAUTHORIZED, otherwise ALLOWED. Denial is a return value, never an exception.

Two adapters translate the outcome for the two HTTP surfaces:

  guard_page(request, page_key)  -- web routes. Returns a RedirectResponse
      (to /login?next=<path> or to the dashboard) or None to proceed:
          if redirect := guard_page(request, "users"):
              return redirect

  require_page_access(*page_keys) -- API routes. Builds a FastAPI dependency
      that raises 401 / 403 and otherwise yields the caller's Identity. With
      several keys, the first one the caller may open is enough.

Nothing is cached between requests: each call re-reads roles and overrides.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from urllib.parse import urlencode

from fastapi import HTTPException, Request
from fastapi.responses import RedirectResponse

from access.resolver import AccessResolver
from auth.dependencies import try_get_identity
from auth.models import Identity

logger = logging.getLogger("adminconsole.access")

# Where an authenticated but unauthorized caller is sent. The dashboard is
# always_allow, so this can never redirect in a loop.
SAFE_DEFAULT_PATH = "/dashboard"
LOGIN_PATH = "/login"


class GuardOutcome(str, Enum):
    ALLOWED = "allowed"
    UNAUTHENTICATED = "unauthenticated"
    UNAUTHORIZED = "unauthorized"


def check_page_access(resolver: AccessResolver, identity: Identity | None, page_key: str) -> GuardOutcome:
    if identity is None:
        return GuardOutcome.UNAUTHENTICATED
    if not resolver.can_access(identity.user_id, identity.roles, page_key):
        logger.info("Access denied: user_id=%s page=%r", identity.user_id, page_key)
        return GuardOutcome.UNAUTHORIZED
    return GuardOutcome.ALLOWED


def guard_page(request: Request, page_key: str) -> RedirectResponse | None:
    """Web adapter. Returns a redirect for a denied request, None if allowed."""
    resolver: AccessResolver = request.app.state.access_resolver
    outcome = check_page_access(resolver, try_get_identity(request), page_key)
    if outcome is GuardOutcome.UNAUTHENTICATED:
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        return RedirectResponse(f"{LOGIN_PATH}?{urlencode({'next': target})}", status_code=302)
    if outcome is GuardOutcome.UNAUTHORIZED:
        return RedirectResponse(SAFE_DEFAULT_PATH, status_code=302)
    return None


def require_page_access(*page_keys: str) -> Callable[[Request], Identity]:
    """API adapter. Returns a dependency requiring access to any of page_keys.

    Use as a FastAPI dependency:
        @router.get("/roles")
        def list_roles(identity: Identity = Depends(require_page_access("roles"))): ...
    """
    if not page_keys:
        raise ValueError("require_page_access() needs at least one page key.")

    def dependency(request: Request) -> Identity:
        resolver: AccessResolver = request.app.state.access_resolver
        identity = try_get_identity(request)
        if identity is None:
            raise HTTPException(
                status_code=401,
                detail={"code": "unauthorized", "message": "Authentication required."},
            )
        # Stops at the first allowed key; a denial is logged once, for all keys.
        if any(resolver.can_access(identity.user_id, identity.roles, key) for key in page_keys):
            return identity
        logger.info("Access denied: user_id=%s pages=%r", identity.user_id, page_keys)
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "You do not have access to this page."},
        )

    return dependency
