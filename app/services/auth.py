"""Authentication and profile lifecycle: register, login, refresh, logout, profile edits.

One session per user: the refresh token stored on the User row is the only one
accepted by refresh_token(). Login overwrites it, logout and password change
clear it. Two concurrent logins for the same user are last-write-wins.
"""

import logging
import math

from sqlalchemy.orm import Session

from app.core.errors import (
    AccountDeactivated,
    AppError,
    DuplicateEmail,
    IncorrectPassword,
    InvalidCredentials,
    InvalidRefreshToken,
    UserNotFound,
)
from app.core.logging import audit
from app.core.security import BCRYPT_ROUNDS, TokenIssuer, hash_password, verify_password
from app.models.user import User
from app.schemas.auth import (
    AccessToken,
    AuthTokens,
    MessageData,
    Pagination,
    UserPublic,
    UsersPage,
)
from app.services import user_store

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


def sanitize(user: User) -> UserPublic:
    """Public view of a user (password hash and refresh token omitted)."""
    return UserPublic.model_validate(user)


class AuthService:
    """Stateless orchestration over the credential store and token issuer."""

    def __init__(self, issuer: TokenIssuer, bcrypt_rounds: int = BCRYPT_ROUNDS) -> None:
        self.issuer = issuer
        self.bcrypt_rounds = bcrypt_rounds

    def _start_session(self, db: Session, user: User) -> AuthTokens:
        access_token = self.issuer.issue_access_token(user)
        refresh_token = self.issuer.issue_refresh_token(user)
        user.refresh_token = refresh_token
        user_store.save_user(db, user)
        return AuthTokens(
            user=sanitize(user),
            access_token=access_token,
            refresh_token=refresh_token,
        )

    def _require_user(self, db: Session, user_id: int) -> User:
        user = user_store.get_user_by_id(db, user_id)
        if user is None:
            raise UserNotFound()
        return user

    def register(self, db: Session, email: str, password: str, name: str) -> AuthTokens:
        """Create an account and start its session."""
        if user_store.get_user_by_email(db, email) is not None:
            raise DuplicateEmail()
        user = user_store.create_user(
            db,
            email=email,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
            name=name,
        )
        result = self._start_session(db, user)
        audit("register", user.id, email=user.email)
        return result

    def login(self, db: Session, email: str, password: str) -> AuthTokens:
        """
        Verify credentials and start a new session, replacing any previous one.

        Unknown email and wrong password raise the same InvalidCredentials.
        The active flag is only reported once the password has been verified.
        """
        user = user_store.get_user_by_email(db, email)
        if user is None or not verify_password(password, user.password_hash):
            audit("login_failed", user.id if user else None, email=email)
            raise InvalidCredentials()
        if not user.is_active:
            audit("login_blocked", user.id)
            raise AccountDeactivated()
        result = self._start_session(db, user)
        audit("login", user.id)
        return result

    def refresh_token(self, db: Session, presented_token: str) -> AccessToken:
        """Mint a new access token; the stored refresh token is left unchanged."""
        try:
            payload = self.issuer.verify_refresh_token(presented_token)
        except AppError as e:
            raise InvalidRefreshToken() from e
        try:
            user_id = int(payload["id"])
        except (TypeError, ValueError) as e:
            raise InvalidRefreshToken() from e
        user = user_store.get_user_by_id(db, user_id)
        # A superseded or logged-out token still verifies; only the stored one is accepted.
        if user is None or user.refresh_token != presented_token:
            raise InvalidRefreshToken()
        audit("refresh", user.id)
        return AccessToken(access_token=self.issuer.issue_access_token(user))

    def logout(self, db: Session, user_id: int) -> MessageData:
        """Revoke the stored refresh token. Idempotent; unknown users are a no-op."""
        user = user_store.get_user_by_id(db, user_id)
        if user is not None:
            user.refresh_token = None
            user_store.save_user(db, user)
            audit("logout", user_id)
        return MessageData(message="Logged out successfully")

    def get_profile(self, db: Session, user_id: int) -> UserPublic:
        return sanitize(self._require_user(db, user_id))

    def update_profile(
        self,
        db: Session,
        user_id: int,
        name: str | None = None,
        email: str | None = None,
    ) -> UserPublic:
        """Partial update of name and/or email."""
        if email and user_store.email_taken_by_other(db, email, user_id):
            raise DuplicateEmail()
        user = self._require_user(db, user_id)
        changed = []
        if name is not None:
            user.name = name
            changed.append("name")
        if email:
            user.email = user_store.normalize_email(email)
            changed.append("email")
        if changed:
            user_store.save_user(db, user)
            audit("profile_updated", user_id, fields=",".join(changed))
        return sanitize(user)

    def change_password(
        self, db: Session, user_id: int, old_password: str, new_password: str
    ) -> MessageData:
        """
        Replace the password after checking the current one.

        The stored refresh token is revoked, so other sessions cannot mint new
        access tokens; access tokens already issued stay valid until expiry.
        Length rules on new_password are enforced by the request schema.
        """
        user = self._require_user(db, user_id)
        if not verify_password(old_password, user.password_hash):
            raise IncorrectPassword()
        user.password_hash = hash_password(new_password, rounds=self.bcrypt_rounds)
        user.refresh_token = None
        user_store.save_user(db, user)
        audit("password_changed", user_id)
        return MessageData(message="Password changed successfully")

    def update_image(self, db: Session, user_id: int, image_path: str | None) -> UserPublic:
        """Set (or clear, with None) the stored profile image path."""
        user = self._require_user(db, user_id)
        user.image = image_path
        user_store.save_user(db, user)
        return sanitize(user)

    def list_users(
        self, db: Session, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT
    ) -> UsersPage:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_LIMIT)
        total = user_store.count_users(db)
        users = user_store.list_users(db, offset=(page - 1) * limit, limit=limit)
        total_pages = math.ceil(total / limit)
        logger.debug("Listed users page=%s limit=%s total=%s", page, limit, total)
        return UsersPage(
            users=[sanitize(u) for u in users],
            pagination=Pagination(
                total=total,
                page=page,
                limit=limit,
                total_pages=total_pages,
                has_next_page=page < total_pages,
                has_prev_page=page > 1,
            ),
        )
