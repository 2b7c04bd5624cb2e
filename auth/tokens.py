"""
auth/tokens.py -- JWT session tokens and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       user_id, the email as subject, and expiry. Roles are deliberately NOT
       carried: they are re-read from the store on every request so a role
       change or revocation takes effect immediately. Verification returns
       None on any failure -- the route layer turns that into a 401 or a
       redirect to /login.

  Passwords: bcrypt directly. The _DUMMY_HASH constant enables timing
       equalization in authenticate_user() so response time does not reveal
       whether an email is registered.

  SECRET_KEY: sourced from core.config.get_settings(), which validates it at
       startup.

Layer rule: no imports from access/, api/, or web/. Import from core/ is
allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("adminconsole.auth")

_settings = get_settings()

_ALGORITHM = "HS256"
_BCRYPT_ROUNDS = 12

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes, and recent releases reject
    longer input, so the encoded password is truncated there.
    """
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("adminconsole_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: int, email: str, expire_seconds: int = 0) -> str:
    """Encode a signed JWT for user_id.

    Args:
        user_id:        Numeric user ID stored in the DB.
        email:          Stored as the JWT subject claim.
        expire_seconds: Session duration in seconds. 0 (default) uses
                        Settings.token_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    expire = datetime.now(timezone.utc) + timedelta(seconds=duration)
    payload = {
        "sub": email,
        "user_id": user_id,
        "exp": expire,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure."""
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if not isinstance(payload.get("user_id"), int):
        return None
    return payload


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None or not user.hashed_password:
        verify_password(password, _DUMMY_HASH)
        logger.info("Login rejected for unknown email")
        return None
    if not verify_password(password, user.hashed_password):
        logger.info("Login rejected for user_id=%s (bad password)", user.id)
        return None
    return user


# ---------------------------------------------------------------------------
# Cookie helper
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, expire_seconds: int = 0) -> None:
    """Write the JWT access token as an httpOnly cookie on the response.

    httponly=True keeps it away from JS; samesite="lax" withholds it from
    cross-site POSTs; secure follows SECURE_COOKIES; max_age matches the JWT
    expiry so both expire together.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    response.set_cookie(
        "access_token",
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=duration,
    )
