"""Auth dependencies: bearer-token identity, optional identity, role checks.

Components (settings, token issuer, auth service) are built once in
create_app() and read from app.state here.
"""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import Settings
from app.core.errors import AppError, Forbidden, InvalidToken, NoToken, Unauthorized
from app.core.security import TokenIssuer
from app.models.user import UserRole
from app.schemas.auth import CurrentUser
from app.services.auth import AuthService

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _bearer_token(credentials: HTTPAuthorizationCredentials | None) -> str:
    # Only the exact "Bearer <token>" form is accepted.
    if credentials is None or credentials.scheme != "Bearer" or not credentials.credentials:
        raise NoToken()
    return credentials.credentials.strip()


def _identity_from_token(issuer: TokenIssuer, token: str) -> CurrentUser:
    payload = issuer.verify_access_token(token)
    try:
        return CurrentUser(
            id=int(payload["id"]), email=payload["email"], role=payload["role"]
        )
    except (TypeError, ValueError) as e:
        raise InvalidToken() from e


def require_auth(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
) -> CurrentUser:
    """Dependency: require a valid access token. Raises NoToken, TokenExpired or InvalidToken (401)."""
    identity = _identity_from_token(issuer, _bearer_token(credentials))
    request.state.user = identity
    return identity


def optional_auth(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
) -> CurrentUser | None:
    """Dependency: identity when a valid token is presented, otherwise None (anonymous)."""
    try:
        identity = _identity_from_token(issuer, _bearer_token(credentials))
    except AppError as e:
        logger.debug("Optional auth ignored token: %s", e.message)
        return None
    request.state.user = identity
    return identity


def authorize(identity: CurrentUser | None, allowed: tuple[str, ...]) -> CurrentUser:
    """Raise Unauthorized without identity, Forbidden when its role is not allowed."""
    if identity is None:
        raise Unauthorized()
    if identity.role not in allowed:
        raise Forbidden()
    return identity


def require_role(*allowed: str) -> Callable[..., CurrentUser]:
    """Dependency factory: authenticated user whose token role is one of allowed."""
    allowed_roles = tuple(getattr(r, "value", r) for r in allowed)

    def dependency(
        current_user: Annotated[CurrentUser, Depends(require_auth)],
    ) -> CurrentUser:
        return authorize(current_user, allowed_roles)

    return dependency


def require_admin(
    current_user: Annotated[CurrentUser, Depends(require_auth)],
) -> CurrentUser:
    """Dependency: require authenticated user with role 'admin'. Raises 403 for non-admin."""
    if current_user.role != UserRole.ADMIN.value:
        raise Forbidden("Admin access required")
    return current_user
