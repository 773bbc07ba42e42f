"""Security Primitives: password hashing (passlib) and JWT access tokens (python-jose).

Invariants:
    - Plain passwords never leave this module; only hashes are persisted
    - Every access token carries sub (user id), role and exp
    - decode_access_token() raises UnauthenticatedError, never returns partial claims

Design Decisions:
    - pbkdf2_sha256 scheme: pure-Python backend, no native bcrypt build required
    - Timezone-aware expiry (datetime.now(timezone.utc)) rather than utcnow()
    - Settings passed in explicitly so tests can mint tokens with their own secret
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from calcsync.config import Settings
from calcsync.core.errors import UnauthenticatedError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    settings: Settings,
    subject: str,
    role: str,
    expires_delta: timedelta | None = None,
    extra: dict[str, Any] | None = None,
) -> str:
    """Create a signed JWT access token for subject."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = dict(extra or {})
    to_encode.update({"sub": subject, "role": role, "exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(settings: Settings, token: str) -> dict[str, Any]:
    """Verify signature and expiry; return the claims."""
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise UnauthenticatedError("Invalid or expired token")
    if not payload.get("sub"):
        raise UnauthenticatedError("Token has no subject")
    return payload


def extract_bearer_token(authorization: str | None) -> str | None:
    """Pull the token out of an 'Authorization: Bearer <token>' header value."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]
