"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AccessToken,
    AuthTokens,
    ChangePasswordRequest,
    CurrentUser,
    LoginRequest,
    MessageData,
    ProfileImage,
    RefreshTokenRequest,
    RegisterRequest,
    UpdateProfileRequest,
    UserPublic,
    UsersPage,
)
from app.schemas.common import ApiResponse, ErrorResponse
from app.schemas.health import HealthResponse

__all__ = [
    "AccessToken",
    "ApiResponse",
    "AuthTokens",
    "ChangePasswordRequest",
    "CurrentUser",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "MessageData",
    "ProfileImage",
    "RefreshTokenRequest",
    "RegisterRequest",
    "UpdateProfileRequest",
    "UserPublic",
    "UsersPage",
]
