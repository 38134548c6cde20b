"""Public authentication operations composed from the auth services."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from app.config import Settings
from app.constants import AuthProvider
from app.models import User
from app.schemas.auth import ProfileUpdateRequest, RegisterRequest
from app.services.auth.exceptions import (
    AccountNotFoundError,
    DuplicateAccountError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    OtpError,
    OtpNoChallengeError,
    RevokedError,
    SessionError,
    UnauthenticatedError,
)
from app.services.auth.otp_issuer import OtpIssuer
from app.services.auth.password_service import PasswordService
from app.services.auth.security_audit_service import SecurityAuditService, SecurityEventType
from app.services.auth.session_manager import SessionManager
from app.services.auth.token_service import TokenPair, TokenService
from app.services.email_service import deliver_verification_otp
from app.services.google_oauth_client import GoogleProfile
from app.services.repositories import (
    DuplicateError,
    StaleRecordError,
    UserRepository,
    generate_student_id,
)

logger = logging.getLogger(__name__)

# Schedules a callable to run after the response is sent (BackgroundTasks.add_task)
TaskScheduler = Callable[..., Any]


@dataclass
class AuthResult:
    """Outcome of an operation that may start a session."""

    user: User
    tokens: TokenPair | None = None
    already_verified: bool = False


class AuthOrchestrator:
    """Registration, login and session operations for one request.

    Account states: unverified accounts can request and consume verification
    codes but cannot log in; an account becomes verified through a correct
    code or a Google sign-in, and stays verified.
    """

    def __init__(
        self,
        db: Session,
        settings: Settings,
        schedule: TaskScheduler,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        self._db = db
        self._schedule = schedule
        self._ip_address = ip_address
        self._user_agent = user_agent
        self.users = UserRepository(db)
        self.tokens = TokenService(settings)
        self.otp = OtpIssuer(self.users, settings)
        self.sessions = SessionManager(self.users, self.tokens)
        self._settings = settings

    def register(self, command: RegisterRequest) -> User:
        """Create an unverified account and send it a verification code. No tokens."""
        if self.users.exists_with_email_or_student_id(command.email, command.student_id):
            raise DuplicateAccountError()

        user = User(
            student_id=command.student_id,
            full_name=command.full_name,
            email=command.email,
            phone_number=command.phone_number or "",
            department=command.department,
            year=command.year,
            provider=AuthProvider.LOCAL,
            wallet_balance=Decimal("0"),
            email_verified=False,
            password_hash=PasswordService.hash_password(command.password),
        )
        # The account and its first challenge are inserted together
        code = self.otp.attach(user)
        try:
            self.users.create(user)
        except DuplicateError as e:
            raise DuplicateAccountError() from e

        self._audit(SecurityEventType.REGISTERED, user.id)
        self._send_code(user, code)
        logger.info(f"User registered (pending verification): {user.email}")
        return user

    def login(self, email: str, password: str) -> AuthResult:
        """Check credentials and start a session for a verified account."""
        user = self.users.find_by_email(email)
        if user is None or not user.password_hash:
            # Dummy verification keeps timing uniform for unknown emails
            PasswordService.verify_password(password, PasswordService.get_dummy_hash())
            self._audit(
                SecurityEventType.LOGIN_FAILED,
                user.id if user else None,
                {"email": email, "reason": "user_not_found" if user is None else "no_password"},
            )
            raise InvalidCredentialsError()

        if not user.email_verified:
            self._audit(SecurityEventType.LOGIN_BLOCKED_UNVERIFIED, user.id)
            raise EmailNotVerifiedError(user.email)

        if not PasswordService.verify_password(password, user.password_hash):
            self._audit(SecurityEventType.LOGIN_FAILED, user.id, {"reason": "invalid_password"})
            raise InvalidCredentialsError()

        tokens = self.sessions.establish(user)
        self._audit(SecurityEventType.LOGIN_SUCCESS, user.id)
        logger.info(f"User logged in: {user.email}")
        return AuthResult(user=user, tokens=tokens)

    def logout(self, refresh_token: str | None) -> None:
        """Best effort: drop the session the token belongs to, if any."""
        if not refresh_token:
            return
        try:
            user_id = self.tokens.verify_refresh(refresh_token)
        except SessionError:
            return

        user = self.users.find_by_id(user_id)
        if user is None:
            return
        try:
            self.sessions.revoke(user)
        except StaleRecordError:
            logger.debug(f"Session for user {user.id} changed during logout")
            return
        self._audit(SecurityEventType.LOGOUT, user.id)

    def refresh(self, refresh_token: str | None) -> AuthResult:
        """Exchange a refresh token for a new pair; the presented token becomes unusable."""
        if not refresh_token:
            raise UnauthenticatedError("Refresh token missing")

        try:
            user = self.sessions.authenticate(refresh_token)
        except RevokedError:
            self._audit(SecurityEventType.REFRESH_TOKEN_REUSED)
            raise

        tokens = self.sessions.rotate(user)
        self._audit(SecurityEventType.SESSION_REFRESHED, user.id)
        return AuthResult(user=user, tokens=tokens)

    def verify_email(self, email: str, code: str) -> AuthResult:
        """Consume a verification code; success also logs the user in."""
        user = self._get_by_email(email)
        if user.email_verified:
            return AuthResult(user=user, already_verified=True)

        try:
            self.otp.verify(user, code)
        except OtpError as e:
            self._audit(SecurityEventType.OTP_FAILED, user.id, {"reason": e.code})
            raise

        user.email_verified = True
        try:
            # One write: challenge cleared, account verified, session stored
            tokens = self.sessions.establish(user)
        except StaleRecordError as e:
            raise OtpNoChallengeError("OTP already used or replaced") from e

        self._audit(SecurityEventType.EMAIL_VERIFIED, user.id)
        logger.info(f"Email verified for user: {user.email}")
        return AuthResult(user=user, tokens=tokens)

    def resend_otp(self, email: str) -> bool:
        """Issue a replacement code. Returns False when the account is already verified."""
        user = self._get_by_email(email)
        if user.email_verified:
            return False

        code = self.otp.issue(user)
        self._send_code(user, code)
        logger.info(f"Verification code resent to: {user.email}")
        return True

    def get_profile(self, user_id: str) -> User:
        user = self.users.find_by_id(user_id)
        if user is None:
            raise AccountNotFoundError()
        return user

    def update_profile(self, user_id: str, patch: ProfileUpdateRequest) -> User:
        """Apply non-security profile fields."""
        user = self.get_profile(user_id)
        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in changes.items():
            setattr(user, field, value.strip() if isinstance(value, str) else value)

        self.users.save(user)
        self._audit(SecurityEventType.PROFILE_UPDATED, user.id, {"fields": sorted(changes)})
        return user

    def federated_callback(self, profile: GoogleProfile) -> AuthResult:
        """Sign in with a Google identity, linking or creating the account."""
        if not profile.email_verified:
            raise InvalidCredentialsError("Google account email is not verified")

        user = self.users.find_by_google_id(profile.google_id) or self.users.find_by_email(
            profile.email
        )
        if user is None:
            user = self.users.create_with_unique_student_id(
                User(
                    email=profile.email,
                    full_name=profile.name or profile.email.split("@")[0],
                    student_id=generate_student_id(),
                    provider=AuthProvider.GOOGLE,
                    google_id=profile.google_id,
                    wallet_balance=Decimal("0"),
                    email_verified=True,
                )
            )
        elif user.google_id is None:
            user.google_id = profile.google_id

        # The provider attests email ownership. Whoever registered the address
        # without verifying it never proved ownership, so their password goes.
        if not user.email_verified:
            user.email_verified = True
            user.otp_challenge = None
            user.password_hash = None
            user.provider = AuthProvider.GOOGLE

        tokens = self.sessions.establish(user)
        self._audit(SecurityEventType.FEDERATED_LOGIN, user.id, {"provider": AuthProvider.GOOGLE})
        logger.info(f"Google sign-in for user: {user.email}")
        return AuthResult(user=user, tokens=tokens)

    def _get_by_email(self, email: str) -> User:
        user = self.users.find_by_email(email)
        if user is None:
            raise AccountNotFoundError()
        return user

    def _send_code(self, user: User, code: str) -> None:
        self._audit(SecurityEventType.OTP_SENT, user.id)
        self._schedule(deliver_verification_otp, self._settings, user.email, code)

    def _audit(self, event_type: str, user_id: str | None = None, details: dict | None = None) -> None:
        SecurityAuditService.log_event(
            self._db,
            event_type,
            user_id=user_id,
            ip_address=self._ip_address,
            user_agent=self._user_agent,
            details=details,
        )
