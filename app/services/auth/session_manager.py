"""Single-session-per-user refresh token lifecycle."""

import logging

from app.models import User
from app.services.auth.exceptions import RevokedError, UnauthenticatedError
from app.services.auth.token_service import TokenPair, TokenService
from app.services.repositories import StaleRecordError, UserRepository

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns ``User.refresh_token_hash``, the one live session a user can have.

    Establishing a session overwrites any previous hash, so signing in on a
    new device signs the others out.
    """

    def __init__(self, users: UserRepository, tokens: TokenService) -> None:
        self._users = users
        self._tokens = tokens

    def establish(self, user: User) -> TokenPair:
        """Issue a token pair and make its refresh token the user's only valid one.

        Raises:
            StaleRecordError: the user changed since it was loaded.
        """
        pair = self._tokens.issue_pair(user)
        user.refresh_token_hash = self._tokens.hash_token(pair.refresh_token)
        self._users.save(user)
        logger.debug(f"Session established for user {user.id}")
        return pair

    def revoke(self, user: User) -> None:
        """Drop the user's session."""
        if user.refresh_token_hash is None:
            return
        user.refresh_token_hash = None
        self._users.save(user)
        logger.debug(f"Session revoked for user {user.id}")

    def authenticate(self, refresh_token: str) -> User:
        """Resolve a presented refresh token to its user.

        A token that verifies but no longer matches the stored hash has
        already been rotated or logged out; presenting it again revokes the
        live session as well.

        Raises:
            TokenExpiredError, InvalidTokenError: from token verification.
            UnauthenticatedError: unknown user or no active session.
            RevokedError: the token is not the user's current refresh token.
        """
        user_id = self._tokens.verify_refresh(refresh_token)
        user = self._users.find_by_id(user_id)
        if user is None or user.refresh_token_hash is None:
            raise UnauthenticatedError("Invalid refresh token")

        if not self._tokens.matches_hash(refresh_token, user.refresh_token_hash):
            logger.warning(f"Refresh token reuse detected for user {user.id}")
            try:
                self.revoke(user)
            except StaleRecordError:
                logger.debug(f"Session for user {user.id} changed during reuse revocation")
            raise RevokedError()

        return user

    def rotate(self, user: User) -> TokenPair:
        """Replace the session of a user returned by ``authenticate``.

        The write is conditional on the version read during ``authenticate``;
        losing that race means another request already consumed the token.
        """
        try:
            return self.establish(user)
        except StaleRecordError as e:
            logger.warning(f"Concurrent refresh lost the rotation race for user {user.id}")
            raise RevokedError() from e
