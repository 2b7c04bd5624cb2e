"""
tests/conftest.py -- Shared test fixtures for the admin console.

This module provides:
  - _make_test_store(): creates an isolated in-memory DB for users, roles
    and page overrides
  - _patch_lifespan(): wires the test store, registry and resolver into
    app.state, bypassing real startup
  - access_env: fresh (AccessResolver, UserStore) per test for unit tests
  - make_user: factory creating a user (optionally with a role) plus a JWT
  - api_client: TestClient with admin JWT for API integration tests
  - web_client: TestClient with follow_redirects=False for web route tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment variables must be set before any core/auth/api import:
  DEBUG             -- get_settings() auto-generates SECRET_KEY
  ALLOWED_HOSTS     -- TestClient sends Host: testserver
  LOGIN_RATE_LIMIT  -- high enough that ordinary login tests never hit it
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set these before any core/auth import so get_settings() picks
# them up on its first (cached) call.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from access.registry import build_default_registry
from access.resolver import AccessResolver
from access.store import PageAccessStore
from asgi import app
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api', 'web').
    """
    return UserStore(db_url=f"sqlite:///file:test_console_{db_suffix}?mode=memory&cache=shared&uri=true")


def _build_resolver(user_store: UserStore) -> AccessResolver:
    return AccessResolver(build_default_registry(), PageAccessStore(user_store.engine))


def _create_user(
    store: UserStore,
    email_prefix: str,
    role_name: str | None = None,
    password: str = "userpass123",
) -> tuple[int, str]:
    """Insert a user with a unique email, creating role_name if needed.

    Returns (user_id, token).
    """
    role_id = None
    if role_name is not None:
        role = store.get_role_by_name(role_name)
        role_id = role.id if role is not None else store.create_role(Role(name=role_name))
    email = f"{email_prefix}-{uuid.uuid4().hex[:8]}@example.com"
    uid = store.create_user(User(email=email, hashed_password=hash_password(password), role_id=role_id))
    return uid, create_access_token(user_id=uid, email=email, expire_seconds=3600)


def _patch_lifespan(user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test store into app.state so TestClient routes see
    an isolated test DB rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.page_registry = build_default_registry()
        app.state.access_resolver = _build_resolver(user_store)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Function-scoped fixtures -- unit tests
# ---------------------------------------------------------------------------


@pytest.fixture
def access_env() -> Generator[tuple[AccessResolver, UserStore], None, None]:
    """Yield (resolver, user_store) backed by a database private to one test."""
    user_store = _make_test_store(f"unit_{uuid.uuid4().hex}")
    yield _build_resolver(user_store), user_store
    user_store.close()


@pytest.fixture
def make_user() -> Callable[..., tuple[int, str]]:
    """Factory: make_user(store, "viewer", role_name=None) -> (user_id, token)."""
    return _create_user


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use an isolated in-memory store.
    The token belongs to a user holding the "Administrator" role. The
    store is reachable as client.app.state.user_store.
    """
    user_store = _make_test_store(f"api_{uuid.uuid4().hex[:8]}")
    uid, token = _create_user(user_store, "testadmin", role_name="Administrator")

    app.router.lifespan_context = _patch_lifespan(user_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    user_store.close()


@pytest.fixture(scope="module")
def web_client() -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, token) for web route integration tests.

    follow_redirects=False is essential for web route tests: we assert on
    redirect *locations* (e.g. 302 to /login), which are invisible once
    the client follows the redirect and returns the final 200 response.
    """
    user_store = _make_test_store(f"web_{uuid.uuid4().hex[:8]}")
    _uid, token = _create_user(user_store, "webadmin", role_name="Administrator")

    app.router.lifespan_context = _patch_lifespan(user_store)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, token

    user_store.close()
