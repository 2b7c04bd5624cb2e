"""
api/routes/v1/roles.py -- Role management REST endpoints.

Routes:
  GET    /api/v1/roles          -- paginated list (page "roles")
  POST   /api/v1/roles          -- create role (page "roles")
  GET    /api/v1/roles/options  -- id/name pairs for select inputs
                                   (page "users" OR "roles")
  GET    /api/v1/roles/{id}     -- role detail (page "roles")
  PATCH  /api/v1/roles/{id}     -- rename / re-describe (page "roles")
  DELETE /api/v1/roles/{id}     -- delete; holders lose the role (page "roles")

/roles/options is registered before /roles/{id} so "options" is not captured
as a path parameter.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.exc import IntegrityError

from access.guard import require_page_access
from api.models import (
    OkResponse,
    RoleCreate,
    RoleListResponse,
    RoleOptionsResponse,
    RolePatch,
    RoleRef,
    RoleResponse,
)
from auth.models import Identity, Role
from auth.store import UserStore

router = APIRouter()

_require_roles_page = require_page_access("roles")


def _conflict() -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={"code": "conflict", "message": "A role with that name already exists."},
    )


def _get_or_404(user_store: UserStore, role_id: int) -> Role:
    role = user_store.get_role(role_id)
    if role is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Role not found."},
        )
    return role


@router.get("/roles", response_model=RoleListResponse)
def list_roles(
    request: Request,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    q: str = Query(default="", max_length=255),
    identity: Identity = Depends(_require_roles_page),
) -> RoleListResponse:
    user_store: UserStore = request.app.state.user_store
    roles, total = user_store.list_roles(page=page, page_size=page_size, q=q)
    return RoleListResponse(
        items=[RoleResponse.from_role(r) for r in roles],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/roles", response_model=RoleResponse, status_code=201)
def create_role(
    request: Request,
    body: RoleCreate,
    identity: Identity = Depends(_require_roles_page),
) -> RoleResponse:
    user_store: UserStore = request.app.state.user_store
    description = body.description.value if body.description is not None else None
    try:
        role_id = user_store.create_role(Role(name=body.name, description=description))
    except IntegrityError as exc:
        raise _conflict() from exc
    return RoleResponse.from_role(_get_or_404(user_store, role_id))


@router.get("/roles/options", response_model=RoleOptionsResponse)
def role_options(
    request: Request,
    identity: Identity = Depends(require_page_access("users", "roles")),
) -> RoleOptionsResponse:
    user_store: UserStore = request.app.state.user_store
    return RoleOptionsResponse(items=[RoleRef(id=r.id, name=r.name) for r in user_store.list_role_options()])


@router.get("/roles/{role_id}", response_model=RoleResponse)
def get_role(
    request: Request,
    role_id: int,
    identity: Identity = Depends(_require_roles_page),
) -> RoleResponse:
    return RoleResponse.from_role(_get_or_404(request.app.state.user_store, role_id))


@router.patch("/roles/{role_id}", response_model=RoleResponse)
def update_role(
    request: Request,
    role_id: int,
    body: RolePatch,
    identity: Identity = Depends(_require_roles_page),
) -> RoleResponse:
    """Apply the fields present in the body. description=null clears it."""
    user_store: UserStore = request.app.state.user_store
    _get_or_404(user_store, role_id)

    sent = body.model_fields_set
    updates: dict = {}
    if "name" in sent and body.name is not None:
        updates["name"] = body.name
    if "description" in sent:
        updates["description"] = body.description.value if body.description is not None else None

    try:
        user_store.update_role(role_id, **updates)
    except IntegrityError as exc:
        raise _conflict() from exc
    return RoleResponse.from_role(_get_or_404(user_store, role_id))


@router.delete("/roles/{role_id}", response_model=OkResponse)
def delete_role(
    request: Request,
    role_id: int,
    identity: Identity = Depends(_require_roles_page),
) -> OkResponse:
    request.app.state.user_store.delete_role(role_id)
    return OkResponse()
