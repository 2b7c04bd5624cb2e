"""
tests/test_roles.py -- Unit tests for administrator classification.

Every historical spelling of the administrator role is accepted; anything
else, including other capitalizations, is an ordinary role.
"""

from __future__ import annotations

import pytest

from access.roles import ADMIN_ROLE_ALIASES, DEFAULT_ADMIN_ROLE, is_administrator


@pytest.mark.parametrize("alias", sorted(ADMIN_ROLE_ALIASES))
def test_each_alias_is_administrator(alias: str) -> None:
    assert is_administrator({alias})


@pytest.mark.parametrize("name", ["Admin", "administrator", "ADMINISTRATOR", "admins", " admin", "管理"])
def test_near_misses_are_not_administrator(name: str) -> None:
    assert not is_administrator({name})


def test_none_and_empty_are_not_administrator() -> None:
    assert not is_administrator(None)
    assert not is_administrator(set())
    assert not is_administrator([])


def test_any_matching_role_is_enough() -> None:
    assert is_administrator(["Editor", "Viewer", "管理员"])


def test_ordinary_roles_only() -> None:
    assert not is_administrator(frozenset({"Editor", "Viewer"}))


def test_seeded_role_name_is_an_alias() -> None:
    assert DEFAULT_ADMIN_ROLE in ADMIN_ROLE_ALIASES
