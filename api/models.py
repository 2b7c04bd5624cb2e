"""
API request and response models for the admin console REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
access/models.py, which own the internal domain representation. Route handlers
map between the two.
"""

from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints

from access.models import PageAccess
from auth.models import Role, User

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleDescriptionEnum(str, Enum):
    user = "User"
    administrator = "Administrator"


# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


class OkResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool = True


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

# Passwords are taken exactly as typed. strip_whitespace=False overrides the
# models' str_strip_whitespace=True for these fields only.
LoginPassword = Annotated[str, StringConstraints(strip_whitespace=False, min_length=1, max_length=128)]
NewPassword = Annotated[str, StringConstraints(strip_whitespace=False, min_length=6, max_length=128)]


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: LoginPassword


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str
    expires_in: int
    user_id: int
    email: str


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    email: str
    name: Optional[str]
    roles: list[str]
    is_admin: bool


class AllowedPagesResponse(BaseModel):
    """Response for GET /api/v1/me/pages. keys is sorted for stable output."""

    model_config = ConfigDict(frozen=True)

    keys: list[str]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    password: NewPassword
    role_id: Optional[int] = None


class UserPatch(BaseModel):
    """Partial update. Omitted fields are left alone; name=null clears the name
    and role_id=null removes the role."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: Optional[EmailStr] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    password: Optional[NewPassword] = None
    role_id: Optional[int] = None


class RoleRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    name: Optional[str]
    role: Optional[RoleRef]
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        role = RoleRef(id=user.role_id, name=user.role_name) if user.role_id is not None else None
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=role,
            created_at=user.created_at or "",
        )


class UserListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: list[UserResponse]
    total: int
    page: int
    page_size: int


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


class RoleCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    description: Optional[RoleDescriptionEnum] = None


class RolePatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[RoleDescriptionEnum] = None


class RoleResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: Optional[str]
    created_at: str

    @classmethod
    def from_role(cls, role: Role) -> "RoleResponse":
        return cls(
            id=role.id,
            name=role.name,
            description=role.description,
            created_at=role.created_at or "",
        )


class RoleListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: list[RoleResponse]
    total: int
    page: int
    page_size: int


class RoleOptionsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: list[RoleRef]


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


class PageAccessUpdate(BaseModel):
    """Request body for PUT /api/v1/access."""

    model_config = ConfigDict(str_strip_whitespace=True)

    page_key: str = Field(min_length=1, max_length=64)
    allowed: bool


class PageAccessItem(BaseModel):
    """One page in the per-user access review.

    allowed is the effective decision; stored_allowed is the raw override
    (null when no row exists). The two differ for administrators, who are
    allowed everywhere without any stored rows.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    path: str
    admin_only: bool
    always_allow: bool
    locked: bool
    allowed: bool
    stored_allowed: Optional[bool]

    @classmethod
    def from_page_access(cls, item: PageAccess) -> "PageAccessItem":
        return cls(
            key=item.page.key,
            label=item.page.label,
            path=item.page.path,
            admin_only=item.page.admin_only,
            always_allow=item.page.always_allow,
            locked=item.page.locked,
            allowed=item.allowed,
            stored_allowed=item.stored_allowed,
        )


class AccessUserRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str


class PageAccessResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: AccessUserRef
    items: list[PageAccessItem]
