"""
Authentication API endpoints.

Handles:
- User login behind the brute-force limiter
- Current user lookup
- Password change and logout
"""

from fastapi import APIRouter, Depends

from app.api.v1.schemas import LoginRequest, LoginResponse, MessageResponse, PasswordChangeRequest, UserResponse
from app.core.dependencies import get_authenticator, get_current_user
from app.infrastructure.database.models.school_models import User
from app.services.auth_service import Authenticator, user_payload

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, authenticator: Authenticator = Depends(get_authenticator)):
    """Exchange an identifier (username or email) and password for an access token."""
    return await authenticator.authenticate(request.identifier, request.password)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    return user_payload(current_user)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    request: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    authenticator: Authenticator = Depends(get_authenticator),
):
    await authenticator.change_password(current_user, request.current_password, request.new_password)
    return {"message": "Password changed successfully"}


@router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: User = Depends(get_current_user),
    authenticator: Authenticator = Depends(get_authenticator),
):
    return await authenticator.logout(current_user)
