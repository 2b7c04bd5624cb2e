"""
access/resolver.py -- Page access decisions and the override write path.

Decision order for one page (first match wins):
  1. Unknown page key             -> deny
  2. always_allow page            -> allow
  3. Administrator                -> allow
  4. admin_only page              -> deny
  5. Stored override Present(True) -> allow, anything else -> deny

Administrator status is a full bypass, not an implicit override: an
administrator sees every page, including admin_only pages and pages with no
stored row.

AccessResolver holds no mutable state. Every call reads overrides from the
store, so a revoked override applies to the very next request.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from access.errors import ImmutablePageError, PageNotFoundError
from access.models import ABSENT, PageAccess, PageDescriptor, Present, StoredOverride
from access.registry import PageRegistry
from access.roles import is_administrator
from access.store import PageAccessStore

logger = logging.getLogger("adminconsole.access")


def _decide(page: PageDescriptor, is_admin: bool, stored: StoredOverride) -> bool:
    if page.always_allow:
        return True
    if is_admin:
        return True
    if page.admin_only:
        return False
    return isinstance(stored, Present) and stored.allowed


class AccessResolver:
    def __init__(self, registry: PageRegistry, store: PageAccessStore) -> None:
        self.registry = registry
        self.store = store

    def resolve_allowed_keys(self, user_id: int, roles: Iterable[str] | None) -> frozenset[str]:
        """Return every page key the identity may open."""
        if is_administrator(roles):
            return frozenset(self.registry.keys())
        allowed = set(self.registry.always_allowed_keys())
        for key in self.store.find_all_allowed_for_user(user_id):
            page = self.registry.get(key)
            # Stray rows for admin_only or retired pages are ignored.
            if page is not None and not page.admin_only:
                allowed.add(key)
        return frozenset(allowed)

    def can_access(self, user_id: int, roles: Iterable[str] | None, page_key: str) -> bool:
        page = self.registry.get(page_key)
        if page is None:
            return False
        is_admin = is_administrator(roles)
        # Locked pages and administrators never depend on a stored row.
        if page.locked or is_admin:
            return _decide(page, is_admin, ABSENT)
        return _decide(page, is_admin, self.store.find(user_id, page_key))

    def set_override(self, user_id: int, page_key: str, allowed: bool) -> None:
        """Record an explicit allow/deny for an ordinary page.

        Raises PageNotFoundError for an unknown key and ImmutablePageError for
        always_allow / admin_only pages. Nothing is written when either is
        raised.
        """
        page = self.registry.get(page_key)
        if page is None:
            logger.warning("Override rejected: unknown page %r (user_id=%s)", page_key, user_id)
            raise PageNotFoundError(page_key)
        if page.locked:
            logger.warning("Override rejected: page %r is locked (user_id=%s)", page_key, user_id)
            raise ImmutablePageError(page_key)
        self.store.upsert(user_id, page_key, allowed)
        logger.info("Override set: user_id=%s page=%r allowed=%s", user_id, page_key, allowed)

    def describe_pages(self, user_id: int, roles: Iterable[str] | None) -> list[PageAccess]:
        """Return the effective and stored access of every page, in registry order."""
        is_admin = is_administrator(roles)
        stored_rows = self.store.list_for_user(user_id)
        result: list[PageAccess] = []
        for page in self.registry:
            stored = Present(stored_rows[page.key]) if page.key in stored_rows else ABSENT
            result.append(PageAccess(page=page, allowed=_decide(page, is_admin, stored), stored=stored))
        return result
