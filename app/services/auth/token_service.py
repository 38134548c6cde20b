"""JWT access/refresh token signing and verification."""

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt

from app.config import Settings
from app.constants import TokenType
from app.models import User
from app.services.auth.exceptions import InvalidTokenError, TokenExpiredError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    """Plaintext access/refresh tokens handed to the client."""

    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


class TokenService:
    """Issues and verifies signed tokens bound to a user ID.

    Tokens are stateless: there is no revocation list here. Refresh tokens
    are revoked by ``SessionManager`` comparing their hash to the one stored
    on the user.
    """

    def __init__(self, settings: Settings) -> None:
        self._algorithm = settings.jwt_algorithm
        self._access_secret = settings.jwt_access_secret
        self._refresh_secret = settings.jwt_refresh_secret
        self._access_ttl = timedelta(minutes=settings.access_token_expire_minutes)
        self._refresh_ttl = timedelta(days=settings.refresh_token_expire_days)

    def sign_access(self, user: User, expires_delta: timedelta | None = None) -> str:
        """Create a short-lived access token."""
        return self._sign(
            user.id, TokenType.ACCESS, self._access_secret, expires_delta or self._access_ttl
        )

    def sign_refresh(self, user: User, expires_delta: timedelta | None = None) -> str:
        """Create a refresh token."""
        return self._sign(
            user.id, TokenType.REFRESH, self._refresh_secret, expires_delta or self._refresh_ttl
        )

    def issue_pair(self, user: User) -> TokenPair:
        """Sign a fresh access/refresh pair for ``user``."""
        access_token = self.sign_access(user)
        refresh_token = self.sign_refresh(user)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_expires_at=self.expires_at(access_token),
            refresh_expires_at=self.expires_at(refresh_token),
        )

    def verify_access(self, token: str) -> str:
        """Return the user ID embedded in a valid access token."""
        return self._verify(token, TokenType.ACCESS, self._access_secret)

    def verify_refresh(self, token: str) -> str:
        """Return the user ID embedded in a valid refresh token.

        Raises:
            TokenExpiredError: the ``exp`` claim has passed.
            InvalidTokenError: bad signature, malformed token, wrong type or no subject.
        """
        return self._verify(token, TokenType.REFRESH, self._refresh_secret)

    @staticmethod
    def expires_at(token: str) -> datetime:
        """Read the ``exp`` claim without verifying the signature."""
        payload = jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
        return datetime.fromtimestamp(payload["exp"], tz=UTC)

    @staticmethod
    def hash_token(token: str) -> str:
        """Hash a token using SHA-256 (refresh tokens exceed bcrypt's 72-byte limit)."""
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    @classmethod
    def matches_hash(cls, token: str, hashed: str | None) -> bool:
        """Constant-time comparison of a token against a stored hash."""
        if not hashed:
            return False
        return hmac.compare_digest(cls.hash_token(token), hashed)

    def _sign(self, user_id: str, token_type: str, secret: str, expires_delta: timedelta) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": user_id,
            "exp": now + expires_delta,
            "iat": now,
            "type": token_type,
            # Two tokens signed within the same second must still differ
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, secret, algorithm=self._algorithm)

    def _verify(self, token: str, token_type: str, secret: str) -> str:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            logger.debug(f"{token_type} token expired")
            raise TokenExpiredError() from e
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid {token_type} token: {e}")
            raise InvalidTokenError() from e

        if payload.get("type") != token_type:
            raise InvalidTokenError("Invalid token type")

        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise InvalidTokenError()
        return user_id
