"""
access/roles.py -- Administrator classification of a role set.

Role names were never normalized: historical data uses the Chinese display
name, a lower/upper-case short form, and a long English form for the same
administrator role. All of them are accepted; matching is exact and
case-sensitive, so "Admin" is not an administrator.
"""

from __future__ import annotations

from collections.abc import Iterable

ADMIN_ROLE_ALIASES: frozenset[str] = frozenset({"管理员", "admin", "ADMIN", "Administrator"})

# Role name the seed command creates and assigns.
DEFAULT_ADMIN_ROLE = "Administrator"


def is_administrator(roles: Iterable[str] | None) -> bool:
    if not roles:
        return False
    return any(role in ADMIN_ROLE_ALIASES for role in roles)
