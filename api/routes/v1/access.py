"""
api/routes/v1/access.py -- Per-user page access review and override writes.

Routes (both require the admin_only "access" page, i.e. an administrator):
  GET /api/v1/access?user_id=  -- every page with its effective and stored access
  PUT /api/v1/access?user_id=  -- set one override: {"page_key", "allowed"}

The write endpoint surfaces the resolver's rejections as 400:
  page_not_found -- page_key is not in the registry
  immutable_page -- page is always_allow or admin_only
Nothing is written when either is returned.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from access.errors import AccessError
from access.guard import require_page_access
from access.resolver import AccessResolver
from api.models import AccessUserRef, OkResponse, PageAccessItem, PageAccessResponse, PageAccessUpdate
from auth.models import Identity, User
from auth.store import UserStore

router = APIRouter()

_require_access_page = require_page_access("access")


def _get_target_or_404(user_store: UserStore, user_id: int) -> User:
    user = user_store.get_by_id(user_id)
    if user is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    return user


@router.get("/access", response_model=PageAccessResponse)
def get_user_access(
    request: Request,
    user_id: int = Query(ge=1),
    identity: Identity = Depends(_require_access_page),
) -> PageAccessResponse:
    user_store: UserStore = request.app.state.user_store
    resolver: AccessResolver = request.app.state.access_resolver

    target = _get_target_or_404(user_store, user_id)
    target_roles = user_store.get_role_names(target.id)
    items = resolver.describe_pages(target.id, target_roles)
    return PageAccessResponse(
        user=AccessUserRef(id=target.id, email=target.email),
        items=[PageAccessItem.from_page_access(i) for i in items],
    )


@router.put("/access", response_model=OkResponse)
def set_user_access(
    request: Request,
    body: PageAccessUpdate,
    user_id: int = Query(ge=1),
    identity: Identity = Depends(_require_access_page),
) -> OkResponse:
    user_store: UserStore = request.app.state.user_store
    resolver: AccessResolver = request.app.state.access_resolver

    target = _get_target_or_404(user_store, user_id)
    try:
        resolver.set_override(target.id, body.page_key, body.allowed)
    except AccessError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": exc.code, "message": str(exc)},
        ) from exc
    return OkResponse()
