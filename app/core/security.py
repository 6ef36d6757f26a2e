"""Password hashing and JWT issuance/verification for authentication."""

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Protocol

import bcrypt
import jwt

from app.core.errors import InvalidToken, TokenExpired

if TYPE_CHECKING:
    from app.core.config import Settings

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for request validation.
NAME_MAX_LEN = 255
EMAIL_MAX_LEN = 255
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str | None) -> bool:
    """Verify a plain password against a stored hash."""
    if not hashed:
        return False
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


class TokenSubject(Protocol):
    """Anything with the identity fields carried in tokens (e.g. the User row)."""

    id: Any
    email: str
    role: Any


def _role_value(role: Any) -> str:
    return getattr(role, "value", role)


@dataclass(frozen=True)
class TokenIssuer:
    """
    Signs and verifies access and refresh tokens.

    Access and refresh tokens use independent secrets. Stateless: verification
    checks signature and expiry only and never consults the database.
    """

    access_secret: str
    refresh_secret: str
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)
    algorithm: str = "HS256"

    @classmethod
    def from_settings(cls, settings: "Settings") -> "TokenIssuer":
        return cls(
            access_secret=settings.JWT_SECRET.get_secret_value(),
            refresh_secret=settings.JWT_REFRESH_SECRET.get_secret_value(),
            access_ttl=timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
            refresh_ttl=timedelta(minutes=settings.JWT_REFRESH_EXPIRE_MINUTES),
            algorithm=settings.JWT_ALGORITHM,
        )

    def _sign(self, claims: dict[str, Any], secret: str, ttl: timedelta) -> str:
        now = datetime.now(UTC)
        payload = {**claims, "iat": now, "exp": now + ttl}
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def issue_access_token(self, user: TokenSubject) -> str:
        """Create an access token carrying id, email and role."""
        return self._sign(
            {"id": user.id, "email": user.email, "role": _role_value(user.role)},
            self.access_secret,
            self.access_ttl,
        )

    def issue_refresh_token(self, user: TokenSubject) -> str:
        """Create a refresh token carrying only the user id."""
        # jti keeps two tokens issued within the same second distinct.
        return self._sign(
            {"id": user.id, "jti": secrets.token_hex(16)},
            self.refresh_secret,
            self.refresh_ttl,
        )

    def verify(self, token: str, secret: str) -> dict[str, Any]:
        """
        Decode and validate a token; return its payload.
        Raises TokenExpired or InvalidToken.
        """
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired() from e
        except jwt.PyJWTError as e:
            raise InvalidToken() from e

    def verify_access_token(self, token: str) -> dict[str, Any]:
        payload = self.verify(token, self.access_secret)
        if payload.get("id") is None or not payload.get("email") or not payload.get("role"):
            raise InvalidToken()
        return payload

    def verify_refresh_token(self, token: str) -> dict[str, Any]:
        payload = self.verify(token, self.refresh_secret)
        if payload.get("id") is None:
            raise InvalidToken()
        return payload
