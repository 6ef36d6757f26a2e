"""Auth and profile endpoints: register, login, token refresh, logout, profile, image."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from app.api.deps import (
    get_app_settings,
    get_auth_service,
    require_admin,
    require_auth,
)
from app.core.config import Settings
from app.core.database import get_db
from app.core.errors import ImageUploadError, NoImage
from app.core.logging import audit
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
from app.schemas.common import ApiResponse
from app.services import media
from app.services.auth import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, AuthService

logger = logging.getLogger(__name__)

router = APIRouter()

DbSession = Annotated[Session, Depends(get_db)]
Service = Annotated[AuthService, Depends(get_auth_service)]
AuthUser = Annotated[CurrentUser, Depends(require_auth)]


@router.post(
    "/register",
    response_model=ApiResponse[AuthTokens],
    status_code=status.HTTP_201_CREATED,
)
def register(body: RegisterRequest, db: DbSession, service: Service) -> ApiResponse[AuthTokens]:
    """Create an account; returns the user plus access and refresh tokens."""
    result = service.register(db, body.email, body.password, body.name)
    return ApiResponse(message="User registered successfully", data=result)


@router.post("/login", response_model=ApiResponse[AuthTokens])
def login(body: LoginRequest, db: DbSession, service: Service) -> ApiResponse[AuthTokens]:
    """
    Authenticate with email and password.
    Include the access token in the Authorization header as: Bearer <accessToken>
    """
    result = service.login(db, body.email, body.password)
    return ApiResponse(message="Login successful", data=result)


@router.post("/refresh-token", response_model=ApiResponse[AccessToken])
def refresh_token(
    body: RefreshTokenRequest, db: DbSession, service: Service
) -> ApiResponse[AccessToken]:
    """Exchange the current refresh token for a new access token."""
    result = service.refresh_token(db, body.refresh_token)
    return ApiResponse(message="Token refreshed successfully", data=result)


@router.post("/logout", response_model=ApiResponse[MessageData])
def logout(user: AuthUser, db: DbSession, service: Service) -> ApiResponse[MessageData]:
    """Revoke the caller's refresh token."""
    result = service.logout(db, user.id)
    return ApiResponse(message="Logged out successfully", data=result)


@router.get("/profile", response_model=ApiResponse[UserPublic])
def get_profile(user: AuthUser, db: DbSession, service: Service) -> ApiResponse[UserPublic]:
    return ApiResponse(message="Profile retrieved successfully", data=service.get_profile(db, user.id))


@router.put("/profile", response_model=ApiResponse[UserPublic])
def update_profile(
    body: UpdateProfileRequest, user: AuthUser, db: DbSession, service: Service
) -> ApiResponse[UserPublic]:
    """Update name and/or email; omitted fields are unchanged."""
    result = service.update_profile(db, user.id, name=body.name, email=body.email)
    return ApiResponse(message="Profile updated successfully", data=result)


@router.put("/change-password", response_model=ApiResponse[MessageData])
def change_password(
    body: ChangePasswordRequest, user: AuthUser, db: DbSession, service: Service
) -> ApiResponse[MessageData]:
    result = service.change_password(db, user.id, body.old_password, body.new_password)
    return ApiResponse(message="Password changed successfully", data=result)


@router.post("/upload-image", response_model=ApiResponse[ProfileImage])
async def upload_image(
    request: Request,
    user: AuthUser,
    db: DbSession,
    service: Service,
    settings: Annotated[Settings, Depends(get_app_settings)],
    image: Annotated[UploadFile | None, File(description="Profile image (multipart field 'image')")] = None,
) -> ApiResponse[ProfileImage]:
    """
    Upload or replace the caller's profile image.

    Send `multipart/form-data` with a field named `image` (jpeg, jpg, png,
    gif or webp). The previous image file, if any, is deleted.
    """
    if image is None:
        raise ImageUploadError("Please upload an image file")
    image_path = await media.save_user_image(image, user.id, settings)
    try:
        previous = service.get_profile(db, user.id).image
        updated = service.update_image(db, user.id, image_path)
    except Exception:
        media.delete_image(image_path, settings)
        logger.exception("Upload image failed user_id=%s", user.id)
        raise
    if previous and previous != image_path:
        media.delete_image(previous, settings)
    audit("profile_image_updated", user.id, path=image_path)
    return ApiResponse(
        message="Profile image uploaded successfully",
        data=ProfileImage(
            user=updated,
            image_url=media.image_url(str(request.base_url), image_path),
        ),
    )


@router.delete("/delete-image", response_model=ApiResponse[None])
def delete_image(
    user: AuthUser,
    db: DbSession,
    service: Service,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> ApiResponse[None]:
    """Remove the caller's profile image."""
    profile = service.get_profile(db, user.id)
    if not profile.image:
        raise NoImage()
    # Clear the row first so it never points at a deleted file.
    service.update_image(db, user.id, None)
    media.delete_image(profile.image, settings)
    audit("profile_image_deleted", user.id)
    return ApiResponse(message="Profile image deleted successfully")


@router.get("/users", response_model=ApiResponse[UsersPage])
def list_users(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: DbSession,
    service: Service,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_LIMIT)] = DEFAULT_PAGE_LIMIT,
) -> ApiResponse[UsersPage]:
    """List all users (admin only)."""
    return ApiResponse(message="Users retrieved successfully", data=service.list_users(db, page, limit))
