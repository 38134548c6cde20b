"""Email verification one-time codes."""

import hashlib
import hmac
import logging
import secrets
from datetime import UTC, datetime, timedelta

from app.config import Settings
from app.models import OtpChallenge, User
from app.services.auth.exceptions import OtpExpiredError, OtpMismatchError, OtpNoChallengeError
from app.services.repositories import UserRepository

logger = logging.getLogger(__name__)


class OtpIssuer:
    """Generates, hashes and checks the numeric codes that prove email ownership.

    Codes are never stored in plaintext. A user holds at most one outstanding
    challenge; issuing a new one replaces (and so invalidates) the previous.
    """

    def __init__(self, users: UserRepository, settings: Settings) -> None:
        self._users = users
        self._key = settings.otp_secret_key.encode("utf-8")
        self._ttl = timedelta(minutes=settings.otp_expire_minutes)
        self._length = settings.otp_length

    def generate_code(self) -> str:
        """Generate a zero-padded numeric code."""
        return f"{secrets.randbelow(10 ** self._length):0{self._length}d}"

    def hash_code(self, code: str) -> str:
        """Keyed hash, so a leaked table cannot be brute-forced offline."""
        return hmac.new(self._key, code.encode("utf-8"), hashlib.sha256).hexdigest()

    def attach(self, user: User) -> str:
        """Replace the challenge on ``user`` without persisting; returns the plaintext code."""
        code = self.generate_code()
        now = datetime.now(UTC)
        user.otp_challenge = OtpChallenge(
            code_hash=self.hash_code(code),
            expires_at=now + self._ttl,
            sent_at=now,
        )
        return code

    def issue(self, user: User) -> str:
        """Attach a fresh challenge to ``user``, persist it and return the plaintext code."""
        code = self.attach(user)
        self._users.save(user)
        logger.info(f"Issued verification code for user {user.id}")
        return code

    def verify(self, user: User, candidate: str) -> None:
        """Check ``candidate`` against the outstanding challenge.

        On success the challenge is cleared on ``user`` but not persisted: the
        caller commits the clearing together with the verified state, so a
        code can never be replayed.

        Raises:
            OtpNoChallengeError: no challenge outstanding.
            OtpExpiredError: the challenge has expired.
            OtpMismatchError: the code does not match.
        """
        challenge = user.otp_challenge
        if challenge is None:
            raise OtpNoChallengeError()
        if challenge.is_expired(datetime.now(UTC)):
            raise OtpExpiredError()
        if not hmac.compare_digest(self.hash_code(candidate.strip()), challenge.code_hash):
            raise OtpMismatchError()

        user.otp_challenge = None
