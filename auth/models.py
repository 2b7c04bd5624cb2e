"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; stores and routes do the work.

Layer rule: no imports from api/, web/, or access/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class User:
    """A console account. email is the login name and is unique.

    role_id / role_name describe the single role assigned through the
    user_roles join table, or None when the user has no role.
    """

    email: str
    id: int | None = None
    name: str | None = None
    hashed_password: str | None = None
    created_at: str | None = None
    role_id: int | None = None
    role_name: str | None = None


@dataclass
class Role:
    """A named role. description is "User" or "Administrator" when set."""

    name: str
    id: int | None = None
    description: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """The authenticated caller as seen by the access-control core.

    Built fresh for every request by auth.dependencies.try_get_identity();
    roles are read from the store, never from the session token.
    """

    user_id: int
    roles: frozenset[str] = field(default_factory=frozenset)
