"""User profile API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.dependencies import get_current_user, get_user_service
from src.models.user import User
from src.schemas.auth import UserResponse
from src.schemas.common import ApiResponse
from src.schemas.user import ChangePasswordRequest, UserSearchResult, UserUpdate
from src.services.user_service import UserService

router = APIRouter(prefix="/api/v1/users", tags=["users"])

CurrentUser = Annotated[User, Depends(get_current_user)]
Users = Annotated[UserService, Depends(get_user_service)]


@router.get("/profile", response_model=ApiResponse[UserResponse])
def get_profile(current_user: CurrentUser, users: Users):
    return ApiResponse.ok(users.get_by_id(current_user.id))


@router.put("/profile", response_model=ApiResponse[UserResponse])
def update_profile(data: UserUpdate, current_user: CurrentUser, users: Users):
    """Update first and last name."""
    user = users.update_profile(current_user.id, data)
    return ApiResponse.ok(user, "Profile updated")


@router.post("/change-password", response_model=ApiResponse[None])
def change_password(data: ChangePasswordRequest, current_user: CurrentUser, users: Users):
    users.change_password(current_user.id, data)
    return ApiResponse.ok(message="Password changed")


@router.get("/search", response_model=ApiResponse[list[UserSearchResult]])
def search_users(current_user: CurrentUser, users: Users, email: str = ""):
    """Find other users by email fragment, to pick a counterparty."""
    results = users.search(email, exclude_user_id=current_user.id)
    return ApiResponse.ok(results, f"{len(results)} users found")
