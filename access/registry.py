"""
access/registry.py -- The fixed table of pages the console protects.

PageRegistry is built once (build_default_registry() in the app lifespan) and
injected into AccessResolver. It stores its descriptors in a tuple and a
read-only mapping; there are no mutators.

Path lookup mirrors route nesting: "/users/42/edit" belongs to "/users", but
"/usersettings" does not. When several paths match, the longest wins.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from types import MappingProxyType

from access.models import PageDescriptor

DEFAULT_PAGES: tuple[PageDescriptor, ...] = (
    PageDescriptor(key="dashboard", path="/dashboard", label="Dashboard", always_allow=True),
    PageDescriptor(key="users", path="/users", label="User Management"),
    PageDescriptor(key="roles", path="/roles", label="Role Management"),
    PageDescriptor(key="access", path="/access", label="Access Control", admin_only=True),
)


class PageRegistry:
    """Ordered, immutable collection of PageDescriptor keyed by page key."""

    def __init__(self, pages: Iterable[PageDescriptor]) -> None:
        pages = tuple(pages)
        by_key: dict[str, PageDescriptor] = {}
        for page in pages:
            if page.key in by_key:
                raise ValueError(f"Duplicate page key in registry: {page.key!r}")
            by_key[page.key] = page
        self._pages = pages
        self._by_key = MappingProxyType(by_key)
        self._longest_path_first = tuple(sorted(pages, key=lambda p: len(p.path), reverse=True))

    def __iter__(self) -> Iterator[PageDescriptor]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __contains__(self, page_key: object) -> bool:
        return page_key in self._by_key

    def get(self, page_key: str) -> PageDescriptor | None:
        return self._by_key.get(page_key)

    def keys(self) -> tuple[str, ...]:
        """All page keys in registration order."""
        return tuple(p.key for p in self._pages)

    def always_allowed_keys(self) -> frozenset[str]:
        return frozenset(p.key for p in self._pages if p.always_allow)

    def match_path(self, pathname: str) -> str | None:
        """Return the key of the page that owns pathname, or None."""
        for page in self._longest_path_first:
            if pathname == page.path or pathname.startswith(f"{page.path}/"):
                return page.key
        return None


def build_default_registry() -> PageRegistry:
    return PageRegistry(DEFAULT_PAGES)
