"""
access/store.py -- SQLAlchemy Core persistence for per-user page overrides.

Pattern: Repository. PageAccessStore reads and writes the user_page_access
table; the decision logic that interprets the rows lives in resolver.py.

Schema:
  user_page_access (user_id, page_key) is the primary key, so there is at
  most one override per user and page. The table is declared on the auth
  metadata with a foreign key to users.id ON DELETE CASCADE: deleting a user
  deletes their overrides, and UserStore stays unaware of this table.

Atomicity:
  upsert() is one INSERT ... ON CONFLICT DO UPDATE statement. Two concurrent
  writers for the same key each land whole; the later commit wins. This needs
  a dialect-specific insert construct, so only SQLite and PostgreSQL engines
  are accepted.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table, select, true
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine

from access.models import ABSENT, Present, StoredOverride
from auth.store import metadata

user_page_access_table = Table(
    "user_page_access",
    metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("page_key", String(64), primary_key=True),
    Column("allowed", Boolean, nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_UPSERT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}


class PageAccessStore:
    """Repository for AccessOverride rows.

    Shares the engine (and therefore the database) of UserStore:
        user_store = UserStore()
        overrides = PageAccessStore(user_store.engine)
    """

    def __init__(self, engine: Engine) -> None:
        try:
            self._insert = _UPSERT_INSERTS[engine.dialect.name]
        except KeyError:
            raise ValueError(f"Unsupported database dialect for override upserts: {engine.dialect.name!r}") from None
        self.engine = engine
        metadata.create_all(self.engine)

    def find(self, user_id: int, page_key: str) -> StoredOverride:
        """Return Present(allowed) for a stored row, ABSENT otherwise."""
        t = user_page_access_table
        with self.engine.connect() as conn:
            allowed = conn.execute(
                select(t.c.allowed).where((t.c.user_id == user_id) & (t.c.page_key == page_key))
            ).scalar_one_or_none()
        return ABSENT if allowed is None else Present(bool(allowed))

    def find_all_allowed_for_user(self, user_id: int) -> frozenset[str]:
        """Return the page keys stored with allowed=True for user_id."""
        t = user_page_access_table
        stmt = select(t.c.page_key).where((t.c.user_id == user_id) & (t.c.allowed == true()))
        with self.engine.connect() as conn:
            return frozenset(conn.execute(stmt).scalars())

    def list_for_user(self, user_id: int) -> dict[str, bool]:
        """Return every stored row for user_id as {page_key: allowed}."""
        t = user_page_access_table
        with self.engine.connect() as conn:
            rows = conn.execute(select(t.c.page_key, t.c.allowed).where(t.c.user_id == user_id)).fetchall()
        return {row.page_key: bool(row.allowed) for row in rows}

    def upsert(self, user_id: int, page_key: str, allowed: bool) -> None:
        """Create or replace the (user_id, page_key) row in one statement.

        Raises sqlalchemy.exc.IntegrityError if user_id does not exist.
        """
        t = user_page_access_table
        stmt = self._insert(t).values(
            user_id=user_id,
            page_key=page_key,
            allowed=allowed,
            updated_at=datetime.now(timezone.utc).isoformat(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[t.c.user_id, t.c.page_key],
            set_={"allowed": stmt.excluded.allowed, "updated_at": stmt.excluded.updated_at},
        )
        with self.engine.begin() as conn:
            conn.execute(stmt)
