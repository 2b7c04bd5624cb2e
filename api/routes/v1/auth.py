"""
api/routes/v1/auth.py -- Session and identity endpoints.

Routes:
  POST /api/v1/auth/login   -- email/password login; sets JWT cookie
  POST /api/v1/auth/logout  -- clears cookie
  GET  /api/v1/auth/me      -- current identity incl. role names
  GET  /api/v1/me/pages     -- page keys the caller may open

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT).
  authenticate_user() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from access.resolver import AccessResolver
from access.roles import is_administrator
from api.limiter import limiter
from api.models import AllowedPagesResponse, LoginRequest, LoginResponse, MeResponse
from auth.dependencies import get_current_user, try_get_identity
from auth.models import User
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token, set_auth_cookie
from core.config import get_settings

_settings = get_settings()

router = APIRouter()


def _login_rate_limit() -> str:
    return get_settings().login_rate_limit


# @limiter.limit must sit below @router.post: the router has to register the
# limiter's wrapper, which is where per-route limits are enforced.
@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(_login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set JWT cookie.

    Returns the same generic error for an unknown email and a wrong password.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid email or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    token = create_access_token(user.id, user.email)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=_settings.token_expire_seconds,
            user_id=user.id,
            email=user.email,
        ).model_dump(),
    )
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout")
async def logout() -> JSONResponse:
    """Clear the JWT cookie and end the session."""
    resp = JSONResponse(content={"message": "Logged out."})
    resp.delete_cookie("access_token")
    return resp


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request, current_user: User = Depends(get_current_user)) -> MeResponse:
    user_store: UserStore = request.app.state.user_store
    roles = user_store.get_role_names(current_user.id)
    return MeResponse(
        user_id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        roles=sorted(roles),
        is_admin=is_administrator(roles),
    )


@router.get("/me/pages", response_model=AllowedPagesResponse)
def my_pages(request: Request) -> AllowedPagesResponse:
    """Return the page keys the caller may open. Drives navigation rendering."""
    identity = try_get_identity(request)
    if identity is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    resolver: AccessResolver = request.app.state.access_resolver
    keys = resolver.resolve_allowed_keys(identity.user_id, identity.roles)
    return AllowedPagesResponse(keys=sorted(keys))
