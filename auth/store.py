"""
auth/store.py -- SQLAlchemy Core persistence layer for users and roles.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user / _row_to_role are the mappers.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL. Search terms go
  through ColumnOperators.contains(autoescape=True) so "%" and "_" in user
  input match literally.

Ownership:
  users owns user_roles and (via access/store.py) user_page_access. Both
  child tables declare ON DELETE CASCADE, so delete_user() removes a user's
  role assignment and page overrides in the same statement. SQLite only
  honours this with PRAGMA foreign_keys=ON, which _set_sqlite_pragmas()
  enables on every pooled connection.

  A user holds at most one role: user_roles.user_id is the primary key.

Emails:
  Every email is passed through normalize_email() on write and on lookup, so
  the API (EmailStr), the web form and the CLI all agree on one stored form.

Layer rule: no imports from access/, api/, or web/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    event,
    func,
    insert,
    or_,
    select,
    text,
)
from sqlalchemy.engine import Engine

from auth.models import Role, User
from core.config import get_settings

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

# Shared with access/store.py so user_page_access can declare its foreign key
# against users.id and be created by the same create_all() call.
metadata = MetaData()

users_table = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255)),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

roles_table = Table(
    "roles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("description", String(30)),  # "User" | "Administrator"
    Column("created_at", String(32), nullable=False),
)

user_roles_table = Table(
    "user_roles",
    metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False),
)


# ---------------------------------------------------------------------------
# Connection setup
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. foreign_keys=ON is what makes the ON DELETE
    CASCADE clauses above take effect.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def create_db_engine(db_url: str) -> Engine:
    """Build an Engine for db_url, applying the SQLite connection settings."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    """Return email in the form pydantic's EmailStr produces (lower-case domain).

    An address the validator rejects is returned stripped but otherwise
    unchanged, so looking it up simply finds nothing.
    """
    email = email.strip()
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError:
        return email


def _user_select():
    """SELECT users joined to their (optional) role."""
    return select(
        users_table,
        user_roles_table.c.role_id,
        roles_table.c.name.label("role_name"),
    ).select_from(
        users_table.outerjoin(user_roles_table, user_roles_table.c.user_id == users_table.c.id).outerjoin(
            roles_table, roles_table.c.id == user_roles_table.c.role_id
        )
    )


def _search_clause(q: str, *columns):
    needle = q.strip().lower()
    return or_(*(func.lower(col).contains(needle, autoescape=True) for col in columns))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and Role entities.

    Usage:
        store = UserStore()
        store.create_user(User(email="admin@example.com", hashed_password=hash_password("secret")))
        user = store.get_by_email("admin@example.com")
        store.close()
    """

    # Accepted keyword fields for update_user / update_role. Anything else is
    # rejected before it reaches SQL.
    _USER_FIELDS: set = {"email", "name", "hashed_password"}
    _ROLE_FIELDS: set = {"name", "description"}

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = create_db_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        return self.count_users() > 0

    def count_users(self, q: str = "") -> int:
        stmt = select(func.count()).select_from(users_table)
        if q.strip():
            stmt = stmt.where(_search_clause(q, users_table.c.email, users_table.c.name))
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar() or 0

    def create_user(self, user: User) -> int:
        """Insert a new user (and its role assignment) and return the new ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists or
        role_id does not reference a role. The insert and the role assignment
        share one transaction, so a failure leaves no partial user behind.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                insert(users_table).values(
                    email=normalize_email(user.email),
                    name=user.name,
                    hashed_password=user.hashed_password,
                    created_at=_now_iso(),
                )
            )
            user_id = result.inserted_primary_key[0]
            if user.role_id is not None:
                conn.execute(insert(user_roles_table).values(user_id=user_id, role_id=user.role_id))
        return user_id

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by normalized email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_user_select().where(users_table.c.email == normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_user_select().where(users_table.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self, page: int = 1, page_size: int = 10, q: str = "") -> tuple[list[User], int]:
        """Return one page of users (newest first) and the total match count.

        q filters case-insensitively on email or name.
        """
        stmt = _user_select()
        if q.strip():
            stmt = stmt.where(_search_clause(q, users_table.c.email, users_table.c.name))
        stmt = (
            stmt.order_by(users_table.c.created_at.desc(), users_table.c.id.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_user(r) for r in rows], self.count_users(q)

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user.

        Accepted fields: email, name, hashed_password. Unknown keys raise
        ValueError. Returns True if a row was updated, False if user_id was
        not found. Raises IntegrityError on a duplicate email.
        """
        unknown = set(fields) - self._USER_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if not fields:
            return self.get_by_id(user_id) is not None
        if "email" in fields:
            fields["email"] = normalize_email(fields["email"])
        with self.engine.begin() as conn:
            result = conn.execute(users_table.update().where(users_table.c.id == user_id).values(**fields))
        return result.rowcount > 0

    def set_user_role(self, user_id: int, role_id: int | None) -> None:
        """Assign role_id to the user, replacing any previous role. None clears it."""
        with self.engine.begin() as conn:
            conn.execute(delete(user_roles_table).where(user_roles_table.c.user_id == user_id))
            if role_id is not None:
                conn.execute(insert(user_roles_table).values(user_id=user_id, role_id=role_id))

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user. Role assignment and page overrides cascade.

        Returns True if deleted, False if not found.
        """
        with self.engine.begin() as conn:
            result = conn.execute(delete(users_table).where(users_table.c.id == user_id))
        return result.rowcount > 0

    def get_role_names(self, user_id: int) -> frozenset[str]:
        """Return the names of every role assigned to user_id."""
        stmt = (
            select(roles_table.c.name)
            .select_from(roles_table.join(user_roles_table, user_roles_table.c.role_id == roles_table.c.id))
            .where(user_roles_table.c.user_id == user_id)
        )
        with self.engine.connect() as conn:
            return frozenset(conn.execute(stmt).scalars())

    # ------------------------------------------------------------------
    # Role queries
    # ------------------------------------------------------------------

    def create_role(self, role: Role) -> int:
        """Insert a role and return its ID. Raises IntegrityError on a duplicate name."""
        with self.engine.begin() as conn:
            result = conn.execute(
                insert(roles_table).values(
                    name=role.name,
                    description=role.description,
                    created_at=_now_iso(),
                )
            )
        return result.inserted_primary_key[0]

    def get_role(self, role_id: int) -> Role | None:
        with self.engine.connect() as conn:
            row = conn.execute(roles_table.select().where(roles_table.c.id == role_id)).fetchone()
        return _row_to_role(row) if row is not None else None

    def get_role_by_name(self, name: str) -> Role | None:
        with self.engine.connect() as conn:
            row = conn.execute(roles_table.select().where(roles_table.c.name == name)).fetchone()
        return _row_to_role(row) if row is not None else None

    def count_roles(self, q: str = "") -> int:
        stmt = select(func.count()).select_from(roles_table)
        if q.strip():
            stmt = stmt.where(_search_clause(q, roles_table.c.name, roles_table.c.description))
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar() or 0

    def list_roles(self, page: int = 1, page_size: int = 10, q: str = "") -> tuple[list[Role], int]:
        """Return one page of roles (newest first) and the total match count."""
        stmt = roles_table.select()
        if q.strip():
            stmt = stmt.where(_search_clause(q, roles_table.c.name, roles_table.c.description))
        stmt = (
            stmt.order_by(roles_table.c.created_at.desc(), roles_table.c.id.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_role(r) for r in rows], self.count_roles(q)

    def list_role_options(self) -> list[Role]:
        """Return every role ordered by name, for select inputs."""
        with self.engine.connect() as conn:
            rows = conn.execute(roles_table.select().order_by(roles_table.c.name)).fetchall()
        return [_row_to_role(r) for r in rows]

    def update_role(self, role_id: int, **fields) -> bool:
        """Update name and/or description. Same contract as update_user()."""
        unknown = set(fields) - self._ROLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown role fields: {unknown!r}")
        if not fields:
            return self.get_role(role_id) is not None
        with self.engine.begin() as conn:
            result = conn.execute(roles_table.update().where(roles_table.c.id == role_id).values(**fields))
        return result.rowcount > 0

    def delete_role(self, role_id: int) -> bool:
        """Delete a role. Users holding it are left without a role (cascade)."""
        with self.engine.begin() as conn:
            result = conn.execute(delete(roles_table).where(roles_table.c.id == role_id))
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
        role_id=row.role_id,
        role_name=row.role_name,
    )


def _row_to_role(row) -> Role:
    return Role(
        id=row.id,
        name=row.name,
        description=row.description,
        created_at=row.created_at,
    )
