"""Account credentials: bcrypt password hashes and JWT access tokens keyed by user id."""

import uuid
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt

from app.core.config import settings

BCRYPT_ROUNDS = 12
# bcrypt ignores input past 72 bytes and newer releases reject it outright.
BCRYPT_MAX_BYTES = 72

PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128


def _password_bytes(plain_password: str) -> bytes:
    return plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(plain_password: str) -> str:
    """Hash a signup password for users.password_hash."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(plain_password), salt).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """False for a wrong password or a stored value that is not a bcrypt hash."""
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(user_id: uuid.UUID, expires_in: timedelta | None = None) -> str:
    """Signed token whose sub is the account id; lifetime defaults to JWT_EXPIRE_MINUTES."""
    issued_at = datetime.now(UTC)
    lifetime = expires_in or timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    claims = {"sub": str(user_id), "iat": issued_at, "exp": issued_at + lifetime}
    return jwt.encode(
        claims, settings.JWT_SECRET.get_secret_value(), algorithm=settings.JWT_ALGORITHM
    )


def decode_access_token(token: str) -> uuid.UUID:
    """
    Return the account id carried by a token.

    Raises jwt.PyJWTError for a bad signature, an expired token or a missing
    exp/sub claim, and ValueError when sub is not a UUID.
    """
    claims = jwt.decode(
        token,
        settings.JWT_SECRET.get_secret_value(),
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["exp", "sub"]},
    )
    return uuid.UUID(claims["sub"])
