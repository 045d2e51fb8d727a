"""Bearer token verification.

Tokens are issued by the auth service; this backend only verifies them and
turns the claims into a :class:`StudentIdentity`.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.core.config import Settings

ADMIN_ROLE = "admin"
STUDENT_ROLE = "student"


@dataclass(frozen=True)
class StudentIdentity:
    """Verified caller identity."""

    subject_id: int
    email: str | None
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def create_access_token(
    settings: Settings,
    subject_id: int,
    email: str | None = None,
    role: str = STUDENT_ROLE,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=60))
    to_encode: dict[str, Any] = {
        "sub": str(subject_id),
        "email": email,
        "type": role,
        "exp": expire,
    }
    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_token(settings: Settings, token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        return None


def verify_identity(settings: Settings, token: str) -> StudentIdentity | None:
    """Verify a token and return the identity it carries."""
    payload = decode_token(settings, token)
    if not payload:
        return None

    role = payload.get("type")
    if role not in (STUDENT_ROLE, ADMIN_ROLE):
        return None

    try:
        subject_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None

    return StudentIdentity(
        subject_id=subject_id,
        email=payload.get("email"),
        role=role,
    )
