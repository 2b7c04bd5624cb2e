"""
access/models.py -- Domain dataclasses for page access control.

Pattern: Data class. PageDescriptor is frozen because the registry that holds
it is fixed at process start. Present / Absent form the result type of an
override lookup: "no row stored" and "row stored with allowed=False" are
different facts, even though both deny an ordinary page today.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PageDescriptor:
    """A protected page of the console.

    always_allow: granted to every authenticated identity, never overridable.
    admin_only:   granted only to administrators, never overridable.
    """

    key: str
    path: str
    label: str
    always_allow: bool = False
    admin_only: bool = False

    def __post_init__(self) -> None:
        if self.always_allow and self.admin_only:
            raise ValueError(f"Page {self.key!r} cannot be both always_allow and admin_only.")

    @property
    def locked(self) -> bool:
        """True when access is decided by flags alone and overrides are refused."""
        return self.always_allow or self.admin_only


@dataclass(frozen=True)
class Present:
    """An override row exists for (user_id, page_key)."""

    allowed: bool


@dataclass(frozen=True)
class Absent:
    """No override row exists for (user_id, page_key)."""


ABSENT = Absent()

StoredOverride = Present | Absent


@dataclass(frozen=True)
class PageAccess:
    """One row of the per-user access review.

    allowed is the effective decision for the user; stored is the raw override
    lookup. An administrator target has allowed=True on every page while
    stored may still be ABSENT.
    """

    page: PageDescriptor
    allowed: bool
    stored: StoredOverride

    @property
    def stored_allowed(self) -> bool | None:
        return self.stored.allowed if isinstance(self.stored, Present) else None
