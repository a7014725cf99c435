"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from chirp.core.errors import AuthError
from chirp.core.security import decode_access_token
from chirp.db.session import get_db
from chirp.models import User
from chirp.services.accounts import get_user
from chirp.services.storage import MediaStorageClient, get_storage

# Missing headers are reported by get_current_user, not by the scheme itself.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

# Type alias for the application's media storage client
StorageDep = Annotated[MediaStorageClient, Depends(get_storage)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials, if any were sent
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        AuthError: 403 when no bearer token is present, 401 when the token is
            invalid or expired or its user no longer exists
    """
    if credentials is None:
        raise AuthError("No token provided", status_code=status.HTTP_403_FORBIDDEN)

    user_id = decode_access_token(credentials.credentials)
    user = get_user(db, user_id)
    if user is None:
        raise AuthError("User not found")
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
