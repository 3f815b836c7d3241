"""Authentication API endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user, get_user_service, security
from src.database import get_db
from src.models.user import User
from src.schemas.auth import (
    AuthResponse,
    TokenValidation,
    UserLogin,
    UserRegister,
    UserResponse,
)
from src.services.auth import authenticate_user, create_access_token, decode_access_token
from src.services.exceptions import ValidationError
from src.services.user_service import UserService

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    users: Annotated[UserService, Depends(get_user_service)],
):
    """Register a new user."""
    try:
        user = users.register(user_data)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e

    access_token, expires_at = create_access_token(user.id, user.email)

    return AuthResponse(access_token=access_token, expires_at=expires_at, user=user)


@router.post("/login", response_model=AuthResponse)
def login(
    credentials: UserLogin,
    db: Annotated[Session, Depends(get_db)],
):
    """Login with email and password."""
    user = authenticate_user(db, credentials.email, credentials.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token, expires_at = create_access_token(user.id, user.email)

    return AuthResponse(
        access_token=access_token,
        expires_at=expires_at,
        user=UserResponse.model_validate(user),
    )


@router.get("/validate", response_model=TokenValidation)
def validate_token(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Return the claims of a valid token."""
    payload = decode_access_token(credentials.credentials) or {}
    return TokenValidation(
        valid=True,
        user_id=current_user.id,
        email=current_user.email,
        expires_at=datetime.fromtimestamp(payload.get("exp", 0), tz=UTC),
    )


@router.get("/me", response_model=UserResponse)
def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get current user information."""
    return current_user


@router.post("/logout")
def logout(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Logout (client should discard token)."""
    return {"message": "Logged out successfully"}
