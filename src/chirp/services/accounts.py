"""Registration and login."""
from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chirp.core import security
from chirp.core.errors import AuthError, ConflictError
from chirp.models import User
from chirp.schemas.user import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)

__all__ = ["authenticate", "get_user", "register_user"]


def get_user(db: Session, user_id: int) -> User | None:
    """Return a single user by primary key."""
    return db.get(User, user_id)


def register_user(db: Session, payload: RegisterRequest) -> User:
    """Persist a new account with a hashed password.

    Raises:
        ConflictError: If the email or handler is already registered, including
            when a concurrent registration wins the unique constraint.
    """
    email = payload.email.lower()
    if db.query(User).filter(func.lower(User.email) == email).first() is not None:
        raise ConflictError("Email already in use")
    if db.query(User).filter(User.handler == payload.handler).first() is not None:
        raise ConflictError("Handler already in use")

    user = User(
        email=email,
        username=payload.username,
        handler=payload.handler,
        password_hash=security.hash_password(payload.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise ConflictError("Email or handler already in use") from err

    db.refresh(user)
    logger.info("Registered user %s (@%s)", user.id, user.handler)
    return user


def authenticate(db: Session, payload: LoginRequest) -> str:
    """Check credentials and return a fresh access token.

    Raises:
        AuthError: If the email is unknown or the password does not match.
    """
    user = db.query(User).filter(func.lower(User.email) == payload.email.lower()).first()
    if user is None or not security.verify_password(payload.password, user.password_hash):
        raise AuthError("Invalid email or password")
    return security.create_access_token(user.id)
