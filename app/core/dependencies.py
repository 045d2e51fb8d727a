"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Cookie, Depends, Header

from app.core.config import Settings, get_settings
from app.core.exceptions import AuthenticationError, ForbiddenError
from app.core.security import StudentIdentity, verify_identity
from app.core.storage import ObjectStorage, get_object_storage


def get_current_identity(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: str | None = Header(None, description="Bearer token"),
    student_token: str | None = Cookie(None, description="HTTP-only session cookie"),
) -> StudentIdentity:
    """
    Extract and validate the caller identity.

    The bearer header wins; the session cookie covers requests that cannot
    set headers, such as beacon submissions sent while a tab closes.
    """
    if authorization:
        if not authorization.startswith("Bearer "):
            raise AuthenticationError("Invalid authorization header format")
        token = authorization[7:]  # Remove "Bearer " prefix
    elif student_token:
        token = student_token
    else:
        raise AuthenticationError("Authentication required")

    identity = verify_identity(settings, token)

    if not identity:
        raise AuthenticationError("Invalid or expired token")

    return identity


def require_admin():
    """Dependency that requires the admin role."""

    def check_admin(
        identity: Annotated[StudentIdentity, Depends(get_current_identity)],
    ) -> StudentIdentity:
        if not identity.is_admin:
            raise ForbiddenError("Admin access required")
        return identity

    return check_admin


def ensure_self_or_admin(identity: StudentIdentity, user_id: int | None) -> None:
    """Students may only act on their own records."""
    if identity.is_admin or user_id is None:
        return
    if identity.subject_id != user_id:
        raise ForbiddenError("You can only access your own records")


# Type aliases for dependency injection
CurrentIdentity = Annotated[StudentIdentity, Depends(get_current_identity)]
AdminIdentity = Annotated[StudentIdentity, Depends(require_admin())]
AppSettings = Annotated[Settings, Depends(get_settings)]
Storage = Annotated[ObjectStorage, Depends(get_object_storage)]
