#!/usr/bin/env python3
"""
Admin Console -- users, roles and per-page access control.

Usage:
  python main.py seed-admin
  python main.py seed-admin --email ops@example.com --password 'S3cret!!' --name Ops
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload

Environment variables:
  DATABASE_URL         SQLAlchemy URL of the console database.
  SEED_ADMIN_EMAIL     Default --email for seed-admin.
  SEED_ADMIN_PASSWORD  Default --password for seed-admin.
  SEED_ADMIN_NAME      Default --name for seed-admin.
"""

import argparse
import logging
from typing import Optional

from access.roles import DEFAULT_ADMIN_ROLE
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import hash_password
from core.config import get_settings

logger = logging.getLogger("adminconsole.cli")


def seed_admin(store: UserStore, email: str, password: str, name: Optional[str] = None) -> int:
    """Create or reset the administrator account and return its user ID.

    Idempotent: running it twice leaves one user holding the Administrator
    role. An existing account keeps its ID and overrides; only the password
    and name are reset.
    """
    role = store.get_role_by_name(DEFAULT_ADMIN_ROLE)
    if role is None:
        role_id = store.create_role(Role(name=DEFAULT_ADMIN_ROLE, description="Administrator"))
        logger.info("Created role %r (id=%s)", DEFAULT_ADMIN_ROLE, role_id)
    else:
        role_id = role.id

    hashed = hash_password(password)
    user = store.get_by_email(email)
    if user is None:
        user_id = store.create_user(User(email=email, name=name, hashed_password=hashed, role_id=role_id))
        logger.info("Created admin user %s (id=%s)", email, user_id)
    else:
        user_id = user.id
        store.update_user(user_id, name=name, hashed_password=hashed)
        store.set_user_role(user_id, role_id)
        logger.info("Reset admin user %s (id=%s)", email, user_id)
    return user_id


def main(argv: Optional[list[str]] = None) -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="admin-console",
        description="Admin console with per-page access control.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py seed-admin
  python main.py seed-admin --email ops@example.com --password 'S3cret!!'
  python main.py serve --port 8080
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    seed = sub.add_parser("seed-admin", help="Create or reset the administrator account")
    seed.add_argument("--email", default=settings.seed_admin_email, help="Admin login email")
    seed.add_argument("--password", default=settings.seed_admin_password, help="Admin password")
    seed.add_argument("--name", default=settings.seed_admin_name, help="Admin display name")

    serve = sub.add_parser("serve", help="Run the web UI and API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Reload on source changes")

    args = parser.parse_args(argv)

    if args.command == "seed-admin":
        logging.basicConfig(level=logging.INFO, format="%(levelname)-5s %(name)s %(message)s")
        store = UserStore(settings.database_url)
        try:
            user_id = seed_admin(store, args.email.strip(), args.password, args.name or None)
        finally:
            store.close()
        print(f"Administrator {args.email} ready (user_id={user_id}).")

    elif args.command == "serve":
        import uvicorn

        uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)

    else:
        parser.print_help()


if __name__ == "__main__":
    main()
