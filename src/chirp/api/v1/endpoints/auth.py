# src/chirp/api/v1/endpoints/auth.py
"""Authentication endpoints for the Chirp API."""

from __future__ import annotations

from fastapi import APIRouter, status

from chirp.models import User
from chirp.schemas.user import (
    LoginRequest,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
)
from chirp.services import accounts

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/register",
    summary="Create an account",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
)
async def register(payload: RegisterRequest, db: SessionDep) -> RegisterResponse:
    """Register a new user; duplicate email or handler is rejected with 400."""
    accounts.register_user(db, payload)
    return RegisterResponse()


@router.post("/login", summary="Exchange credentials for a bearer token", response_model=TokenResponse)
async def login(payload: LoginRequest, db: SessionDep) -> TokenResponse:
    """Authenticate with email and password."""
    return TokenResponse(token=accounts.authenticate(db, payload))


@router.get("/verify-token", summary="Return the caller's profile", response_model=ProfileResponse)
async def verify_token(current_user: CurrentUserDep) -> User:
    """Validate the bearer token and return the profile it belongs to."""
    return current_user
