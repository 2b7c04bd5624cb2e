"""
api/routes/v1/users.py -- User management REST endpoints.

Routes (all require access to the "users" page):
  GET    /api/v1/users          -- paginated list, ?q= searches email/name
  POST   /api/v1/users          -- create user (optionally with a role)
  GET    /api/v1/users/{id}     -- user detail
  PATCH  /api/v1/users/{id}     -- update email/name/password/role
  DELETE /api/v1/users/{id}     -- delete user; role and page overrides cascade

Errors:
  409 conflict        -- email already taken
  400 role_not_found  -- role_id does not reference an existing role
  404 not_found       -- unknown user id (DELETE is idempotent and never 404s)
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.exc import IntegrityError

from access.guard import require_page_access
from api.models import OkResponse, UserCreate, UserListResponse, UserPatch, UserResponse
from auth.models import Identity, User
from auth.store import UserStore
from auth.tokens import hash_password

logger = logging.getLogger("adminconsole.api")

router = APIRouter()

_require_users_page = require_page_access("users")


def _conflict() -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={"code": "conflict", "message": "A user with that email already exists."},
    )


def _check_role(user_store: UserStore, role_id: int | None) -> None:
    if role_id is not None and user_store.get_role(role_id) is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "role_not_found", "message": "Role not found."},
        )


def _get_or_404(user_store: UserStore, user_id: int) -> User:
    user = user_store.get_by_id(user_id)
    if user is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    return user


@router.get("/users", response_model=UserListResponse)
def list_users(
    request: Request,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    q: str = Query(default="", max_length=255),
    identity: Identity = Depends(_require_users_page),
) -> UserListResponse:
    user_store: UserStore = request.app.state.user_store
    users, total = user_store.list_users(page=page, page_size=page_size, q=q)
    return UserListResponse(
        items=[UserResponse.from_user(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    identity: Identity = Depends(_require_users_page),
) -> UserResponse:
    user_store: UserStore = request.app.state.user_store
    _check_role(user_store, body.role_id)

    new_user = User(
        email=body.email,
        name=body.name,
        hashed_password=hash_password(body.password),
        role_id=body.role_id,
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise _conflict() from exc

    logger.info("User created: id=%s by user_id=%s", user_id, identity.user_id)
    return UserResponse.from_user(_get_or_404(user_store, user_id))


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    request: Request,
    user_id: int,
    identity: Identity = Depends(_require_users_page),
) -> UserResponse:
    return UserResponse.from_user(_get_or_404(request.app.state.user_store, user_id))


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: int,
    body: UserPatch,
    identity: Identity = Depends(_require_users_page),
) -> UserResponse:
    """Apply the fields present in the body. Explicit nulls clear name / role."""
    user_store: UserStore = request.app.state.user_store
    _get_or_404(user_store, user_id)

    sent = body.model_fields_set
    updates: dict = {}
    if "email" in sent and body.email is not None:
        updates["email"] = body.email
    if "name" in sent:
        updates["name"] = body.name
    if "password" in sent and body.password is not None:
        updates["hashed_password"] = hash_password(body.password)

    if "role_id" in sent:
        _check_role(user_store, body.role_id)

    try:
        user_store.update_user(user_id, **updates)
    except IntegrityError as exc:
        raise _conflict() from exc
    if "role_id" in sent:
        user_store.set_user_role(user_id, body.role_id)

    return UserResponse.from_user(_get_or_404(user_store, user_id))


@router.delete("/users/{user_id}", response_model=OkResponse)
def delete_user(
    request: Request,
    user_id: int,
    identity: Identity = Depends(_require_users_page),
) -> OkResponse:
    user_store: UserStore = request.app.state.user_store
    if user_store.delete_user(user_id):
        logger.info("User deleted: id=%s by user_id=%s", user_id, identity.user_id)
    return OkResponse()
