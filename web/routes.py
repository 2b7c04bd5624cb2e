"""
web/routes.py -- Jinja2 template routes for the admin console web UI.

These routes serve server-rendered HTML. They share app.state with the API
routes (same stores, same access resolver) but return HTML instead of JSON.

Every protected page starts with the page guard:
    if redirect := guard_page(request, "users"):
        return redirect
An anonymous caller is sent to /login?next=<path>; an authenticated caller
without access is sent to the dashboard, which every identity may open.

Routes:
  GET  /            -- redirect to /dashboard
  GET  /dashboard   -- overview (page "dashboard", always allowed)
  GET  /users       -- user list (page "users")
  GET  /roles       -- role list (page "roles")
  GET  /access      -- per-user page access review (page "access", admin only)
  GET  /login       -- login form
  POST /login       -- handle email/password login
  POST /logout      -- clear cookie, redirect /login
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from access.guard import SAFE_DEFAULT_PATH, guard_page
from access.resolver import AccessResolver
from auth.dependencies import try_get_current_user, try_get_identity
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token, set_auth_cookie

logger = logging.getLogger("adminconsole.web")

_PAGE_SIZE = 25


def _nav_pages(request: Request) -> list[dict]:
    """Navigation entries the caller may open, with the active one flagged.

    Exposed as a Jinja2 global so layout.html can render the menu without
    every handler passing it in.
    """
    identity = try_get_identity(request)
    if identity is None:
        return []
    resolver: AccessResolver = request.app.state.access_resolver
    allowed = resolver.resolve_allowed_keys(identity.user_id, identity.roles)
    active = resolver.registry.match_path(request.url.path)
    return [
        {"key": p.key, "label": p.label, "path": p.path, "active": p.key == active}
        for p in resolver.registry
        if p.key in allowed
    ]


templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
templates.env.globals["try_get_current_user"] = try_get_current_user
templates.env.globals["nav_pages"] = _nav_pages
router = APIRouter()

# Whitelist mapping for ?error= query params on /login. The raw query param
# is never passed to templates.
_ERROR_MESSAGES: dict[str, str] = {
    "bad_credentials": "Invalid email or password.",
}


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths.

    Rejects absolute URLs and protocol-relative "//host" targets, which would
    redirect off-site after login.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return SAFE_DEFAULT_PATH


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def index() -> RedirectResponse:
    return RedirectResponse(SAFE_DEFAULT_PATH, status_code=302)


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request) -> HTMLResponse:
    if redirect := guard_page(request, "dashboard"):
        return redirect
    user_store: UserStore = request.app.state.user_store
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"users_total": user_store.count_users()},
    )


@router.get("/users", response_class=HTMLResponse)
def users_page(request: Request, page: int = 1, q: str = "") -> HTMLResponse:
    if redirect := guard_page(request, "users"):
        return redirect
    user_store: UserStore = request.app.state.user_store
    page = max(page, 1)
    users, total = user_store.list_users(page=page, page_size=_PAGE_SIZE, q=q)
    return templates.TemplateResponse(
        request,
        "users.html",
        {
            "users": users,
            "total": total,
            "page": page,
            "has_next": page * _PAGE_SIZE < total,
            "q": q,
        },
    )


@router.get("/roles", response_class=HTMLResponse)
def roles_page(request: Request, page: int = 1, q: str = "") -> HTMLResponse:
    if redirect := guard_page(request, "roles"):
        return redirect
    user_store: UserStore = request.app.state.user_store
    page = max(page, 1)
    roles, total = user_store.list_roles(page=page, page_size=_PAGE_SIZE, q=q)
    return templates.TemplateResponse(
        request,
        "roles.html",
        {
            "roles": roles,
            "total": total,
            "page": page,
            "has_next": page * _PAGE_SIZE < total,
            "q": q,
        },
    )


@router.get("/access", response_class=HTMLResponse)
def access_page(request: Request, user_id: Optional[int] = None) -> HTMLResponse:
    if redirect := guard_page(request, "access"):
        return redirect
    user_store: UserStore = request.app.state.user_store
    resolver: AccessResolver = request.app.state.access_resolver

    users, _total = user_store.list_users(page=1, page_size=100)
    target = user_store.get_by_id(user_id) if user_id is not None else None
    items = []
    if target is not None:
        items = resolver.describe_pages(target.id, user_store.get_role_names(target.id))
    return templates.TemplateResponse(
        request,
        "access.html",
        {"users": users, "target": target, "items": items},
    )


# ---------------------------------------------------------------------------
# Auth routes -- login, logout
# ---------------------------------------------------------------------------


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    if try_get_current_user(request) is not None:
        return RedirectResponse(SAFE_DEFAULT_PATH, status_code=302)
    error_msg = _ERROR_MESSAGES.get(request.query_params.get("error", ""), None)
    return templates.TemplateResponse(
        request,
        "login.html",
        {"error_msg": error_msg, "next": _safe_next(request.query_params.get("next"))},
    )


@router.post("/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    next: str = Form(default=SAFE_DEFAULT_PATH),
) -> RedirectResponse:
    """Handle the login form. Failed logins go back to /login with an error code."""
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, email.strip(), password)
    if user is None:
        return RedirectResponse("/login?error=bad_credentials", status_code=302)

    logger.info("Web login: user_id=%s", user.id)
    token = create_access_token(user.id, user.email)
    resp = RedirectResponse(_safe_next(next), status_code=302)
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    resp = RedirectResponse("/login", status_code=302)
    resp.delete_cookie("access_token")
    return resp
