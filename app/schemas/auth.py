"""Request/response schemas for auth and profile endpoints."""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.security import (
    EMAIL_MAX_LEN,
    NAME_MAX_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON (accessToken, isActive...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_email(v: str) -> str:
    v = v.strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email format")
    return v


def _check_name(v: str) -> str:
    if not v.strip():
        raise ValueError("Name must not be blank")
    return v.strip()


class RegisterRequest(CamelModel):
    """New account details."""

    email: str = Field(..., max_length=EMAIL_MAX_LEN, description="Email (login name)")
    password: str = Field(
        ..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN, description="Password"
    )
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LEN, description="Display name")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v)


class LoginRequest(CamelModel):
    """Credentials for login."""

    email: str = Field(..., min_length=1, max_length=EMAIL_MAX_LEN)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token from login")


class UpdateProfileRequest(CamelModel):
    """Partial profile update; omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=NAME_MAX_LEN)
    email: str | None = Field(default=None, max_length=EMAIL_MAX_LEN)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        return None if v is None else _check_email(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return None if v is None else _check_name(v)


class ChangePasswordRequest(CamelModel):
    old_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(
        ..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN
    )


class CurrentUser(BaseModel):
    """Identity decoded from an access token (id, email, role)."""

    id: int
    email: str
    role: str


class UserPublic(CamelModel):
    """User as returned by the API; never includes password or refresh token."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int
    email: str
    name: str
    role: str
    image: str | None = None
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AuthTokens(CamelModel):
    """Result of register and login."""

    user: UserPublic
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AccessToken(CamelModel):
    access_token: str
    token_type: str = "bearer"


class MessageData(CamelModel):
    message: str


class ProfileImage(CamelModel):
    user: UserPublic
    image_url: str | None


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class UsersPage(CamelModel):
    """Response data for GET /auth/users (admin only)."""

    users: list[UserPublic]
    pagination: Pagination
