"""
tests/test_registry.py -- Unit tests for access.registry and PageDescriptor.

Covers:
  - Default pages, their order and flags
  - Duplicate keys and contradictory flags are rejected at construction
  - Lookup by key and by path (nested paths, prefix boundaries, longest match)
"""

from __future__ import annotations

import pytest

from access.models import PageDescriptor
from access.registry import DEFAULT_PAGES, PageRegistry, build_default_registry


class TestDefaultRegistry:
    def test_keys_in_registration_order(self) -> None:
        assert build_default_registry().keys() == ("dashboard", "users", "roles", "access")

    def test_dashboard_is_the_only_always_allowed_page(self) -> None:
        assert build_default_registry().always_allowed_keys() == frozenset({"dashboard"})

    def test_access_page_is_admin_only(self) -> None:
        page = build_default_registry().get("access")
        assert page is not None
        assert page.admin_only
        assert not page.always_allow

    def test_ordinary_pages_are_not_locked(self) -> None:
        registry = build_default_registry()
        assert not registry.get("users").locked
        assert not registry.get("roles").locked
        assert registry.get("dashboard").locked
        assert registry.get("access").locked

    def test_len_iter_and_contains(self) -> None:
        registry = build_default_registry()
        assert len(registry) == len(DEFAULT_PAGES)
        assert [p.key for p in registry] == list(registry.keys())
        assert "users" in registry
        assert "nope" not in registry

    def test_unknown_key_returns_none(self) -> None:
        assert build_default_registry().get("reports") is None


class TestConstruction:
    def test_duplicate_key_rejected(self) -> None:
        pages = [
            PageDescriptor(key="a", path="/a", label="A"),
            PageDescriptor(key="a", path="/b", label="B"),
        ]
        with pytest.raises(ValueError, match="Duplicate"):
            PageRegistry(pages)

    def test_page_cannot_be_both_always_allow_and_admin_only(self) -> None:
        with pytest.raises(ValueError):
            PageDescriptor(key="x", path="/x", label="X", always_allow=True, admin_only=True)

    def test_descriptor_is_frozen(self) -> None:
        page = PageDescriptor(key="x", path="/x", label="X")
        with pytest.raises(AttributeError):
            page.admin_only = True  # type: ignore[misc]

    def test_registry_keeps_a_snapshot_of_its_input(self) -> None:
        pages = [PageDescriptor(key="a", path="/a", label="A")]
        registry = PageRegistry(pages)
        pages.append(PageDescriptor(key="b", path="/b", label="B"))
        assert registry.keys() == ("a",)


class TestMatchPath:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/users", "users"),
            ("/users/42/edit", "users"),
            ("/dashboard", "dashboard"),
            ("/access", "access"),
            ("/usersettings", None),
            ("/", None),
            ("/login", None),
        ],
    )
    def test_default_paths(self, path: str, expected: str | None) -> None:
        assert build_default_registry().match_path(path) == expected

    def test_longest_path_wins(self) -> None:
        registry = PageRegistry(
            [
                PageDescriptor(key="settings", path="/settings", label="Settings"),
                PageDescriptor(key="settings_mail", path="/settings/mail", label="Mail"),
            ]
        )
        assert registry.match_path("/settings/mail/smtp") == "settings_mail"
        assert registry.match_path("/settings/other") == "settings"
