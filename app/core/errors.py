"""Error taxonomy for auth, profile and media operations.

Each error carries the HTTP status it maps to at the API boundary; the
handlers in app.main render them into the response envelope.
"""

from fastapi import status


class AppError(Exception):
    """Base for failures surfaced to API clients as {success: false, message}."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Bad request"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class DuplicateEmail(AppError):
    default_message = "Email already exists"


class InvalidCredentials(AppError):
    """Same message whether the email is unknown or the password is wrong."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid email or password"


class AccountDeactivated(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Account is deactivated"


class InvalidRefreshToken(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid refresh token"


class NoToken(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "No token provided"


class TokenExpired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Token expired"


class InvalidToken(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token"


class IncorrectPassword(AppError):
    default_message = "Current password is incorrect"


class UserNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden: You do not have permission to access this resource"


class ImageUploadError(AppError):
    default_message = "Error uploading file"


class NoImage(AppError):
    default_message = "No profile image to delete"
