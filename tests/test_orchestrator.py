"""Tests for the authentication operations and account state machine."""

from datetime import UTC, datetime, timedelta

import pytest

from app.constants import AccountState, AuthProvider
from app.models import OtpChallenge, SecurityAuditLog, User
from app.schemas.auth import ProfileUpdateRequest, RegisterRequest
from app.services.auth import SecurityEventType, TokenService
from app.services.auth.exceptions import (
    AccountNotFoundError,
    DuplicateAccountError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    OtpExpiredError,
    OtpMismatchError,
    OtpNoChallengeError,
    RevokedError,
    UnauthenticatedError,
)
from app.services.google_oauth_client import GoogleProfile
from tests.conftest import DEFAULT_PASSWORD, registration_payload, sent_code


def register(orchestrator, email="alice@uni.edu", **overrides) -> User:
    return orchestrator.register(
        RegisterRequest.model_validate(registration_payload(email, **overrides))
    )


def wrong_code(code: str) -> str:
    return "000000" if code != "000000" else "111111"


def audit_events(db) -> list[str]:
    return [row.event_type for row in db.query(SecurityAuditLog).all()]


class TestRegister:
    def test_register_creates_unverified_user_with_challenge(self, orchestrator, outbox):
        user = register(orchestrator)

        assert user.state == AccountState.UNVERIFIED
        assert user.otp_challenge is not None
        assert user.refresh_token_hash is None
        assert user.wallet_balance == 0
        outbox.assert_called_once()
        assert outbox.call_args[0][1] == "alice@uni.edu"

    def test_register_duplicate_email(self, orchestrator, db):
        """Second registration with the same email fails and leaves one account."""
        register(orchestrator, student_id="S-1")

        with pytest.raises(DuplicateAccountError):
            register(orchestrator, student_id="S-2")

        assert db.query(User).count() == 1

    def test_register_duplicate_student_id(self, orchestrator, db):
        register(orchestrator, "first@uni.edu", student_id="S-1")

        with pytest.raises(DuplicateAccountError):
            register(orchestrator, "second@uni.edu", student_id="S-1")

        assert db.query(User).count() == 1

    def test_register_audits(self, orchestrator, db):
        register(orchestrator)
        assert sorted(audit_events(db)) == sorted(
            [SecurityEventType.REGISTERED, SecurityEventType.OTP_SENT]
        )


class TestLogin:
    def test_login_verified_user(self, orchestrator, make_user):
        user = make_user()

        result = orchestrator.login("test@example.com", DEFAULT_PASSWORD)

        assert result.user.id == user.id
        assert result.tokens is not None
        assert user.refresh_token_hash == TokenService.hash_token(result.tokens.refresh_token)

    @pytest.mark.parametrize("password", [DEFAULT_PASSWORD, "WrongPass1"])
    def test_unverified_never_gets_session(self, orchestrator, make_user, password):
        """Regardless of password correctness, unverified login yields no session."""
        user = make_user(email_verified=False)

        with pytest.raises(EmailNotVerifiedError):
            orchestrator.login("test@example.com", password)

        assert user.refresh_token_hash is None

    def test_unknown_email(self, orchestrator):
        with pytest.raises(InvalidCredentialsError):
            orchestrator.login("nobody@example.com", DEFAULT_PASSWORD)

    def test_federated_only_account_cannot_password_login(self, orchestrator, make_user):
        make_user(password=None, provider=AuthProvider.GOOGLE, google_id="g-1")

        with pytest.raises(InvalidCredentialsError):
            orchestrator.login("test@example.com", DEFAULT_PASSWORD)

    def test_wrong_password_does_not_mutate(self, orchestrator, make_user):
        """A failed login leaves hashes and session state untouched."""
        user = make_user()
        session = orchestrator.login("test@example.com", DEFAULT_PASSWORD)
        before = (user.password_hash, user.refresh_token_hash, user.version)

        with pytest.raises(InvalidCredentialsError):
            orchestrator.login("test@example.com", "WrongPass1")

        assert (user.password_hash, user.refresh_token_hash, user.version) == before
        assert orchestrator.sessions.authenticate(session.tokens.refresh_token).id == user.id

    def test_unknown_and_wrong_password_are_indistinguishable(self, orchestrator, make_user):
        make_user()

        with pytest.raises(InvalidCredentialsError) as unknown:
            orchestrator.login("nobody@example.com", DEFAULT_PASSWORD)
        with pytest.raises(InvalidCredentialsError) as wrong:
            orchestrator.login("test@example.com", "WrongPass1")

        assert unknown.value.message == wrong.value.message
        assert unknown.value.code == wrong.value.code


class TestVerifyEmail:
    def test_verify_with_correct_code_starts_session(self, orchestrator, outbox):
        register(orchestrator)

        result = orchestrator.verify_email("alice@uni.edu", sent_code(outbox))

        assert result.user.state == AccountState.VERIFIED
        assert result.user.otp_challenge is None
        assert result.tokens is not None
        assert result.user.refresh_token_hash == TokenService.hash_token(
            result.tokens.refresh_token
        )

    def test_verify_wrong_code(self, orchestrator, outbox):
        user = register(orchestrator)

        with pytest.raises(OtpMismatchError):
            orchestrator.verify_email("alice@uni.edu", wrong_code(sent_code(outbox)))

        assert user.email_verified is False
        assert user.otp_challenge is not None

    def test_verify_expired_code(self, orchestrator, outbox, db):
        user = register(orchestrator)
        code = sent_code(outbox)
        now = datetime.now(UTC)
        user.otp_challenge = OtpChallenge(
            code_hash=orchestrator.otp.hash_code(code),
            expires_at=now - timedelta(minutes=1),
            sent_at=now - timedelta(minutes=11),
        )
        db.commit()

        with pytest.raises(OtpExpiredError):
            orchestrator.verify_email("alice@uni.edu", code)

    def test_verify_without_challenge(self, orchestrator, make_user):
        make_user(email_verified=False)

        with pytest.raises(OtpNoChallengeError):
            orchestrator.verify_email("test@example.com", "123456")

    def test_verify_already_verified_is_noop(self, orchestrator, outbox):
        register(orchestrator)
        code = sent_code(outbox)
        orchestrator.verify_email("alice@uni.edu", code)

        again = orchestrator.verify_email("alice@uni.edu", code)

        assert again.already_verified is True
        assert again.tokens is None

    def test_verify_unknown_email(self, orchestrator):
        with pytest.raises(AccountNotFoundError):
            orchestrator.verify_email("nobody@uni.edu", "123456")

    def test_alice_scenario(self, orchestrator, outbox):
        """Register, fail once, verify, then log in with the password."""
        register(orchestrator)
        code = sent_code(outbox)

        with pytest.raises(OtpMismatchError):
            orchestrator.verify_email("alice@uni.edu", wrong_code(code))

        verified = orchestrator.verify_email("alice@uni.edu", code)
        assert verified.tokens is not None

        login = orchestrator.login("alice@uni.edu", DEFAULT_PASSWORD)
        assert login.tokens is not None


class TestResendOtp:
    def test_resend_replaces_code(self, orchestrator, outbox):
        register(orchestrator)
        first = sent_code(outbox)

        assert orchestrator.resend_otp("alice@uni.edu") is True
        second = sent_code(outbox)

        assert outbox.call_count == 2
        if first != second:
            with pytest.raises(OtpMismatchError):
                orchestrator.verify_email("alice@uni.edu", first)
        assert orchestrator.verify_email("alice@uni.edu", second).tokens is not None

    def test_resend_for_verified_is_noop(self, orchestrator, make_user, outbox):
        make_user()

        assert orchestrator.resend_otp("test@example.com") is False
        outbox.assert_not_called()

    def test_resend_unknown_email(self, orchestrator):
        with pytest.raises(AccountNotFoundError):
            orchestrator.resend_otp("nobody@uni.edu")


class TestRefreshAndLogout:
    def test_refresh_rotates(self, orchestrator, make_user):
        make_user()
        login = orchestrator.login("test@example.com", DEFAULT_PASSWORD)

        refreshed = orchestrator.refresh(login.tokens.refresh_token)

        assert refreshed.tokens.refresh_token != login.tokens.refresh_token
        with pytest.raises(RevokedError):
            orchestrator.refresh(login.tokens.refresh_token)

    def test_refresh_requires_token(self, orchestrator):
        with pytest.raises(UnauthenticatedError):
            orchestrator.refresh(None)

    def test_refresh_reuse_is_audited(self, orchestrator, make_user, db):
        make_user()
        login = orchestrator.login("test@example.com", DEFAULT_PASSWORD)
        orchestrator.refresh(login.tokens.refresh_token)

        with pytest.raises(RevokedError):
            orchestrator.refresh(login.tokens.refresh_token)

        assert SecurityEventType.REFRESH_TOKEN_REUSED in audit_events(db)

    def test_logout_revokes(self, orchestrator, make_user):
        user = make_user()
        login = orchestrator.login("test@example.com", DEFAULT_PASSWORD)

        orchestrator.logout(login.tokens.refresh_token)

        assert user.refresh_token_hash is None
        with pytest.raises(UnauthenticatedError):
            orchestrator.refresh(login.tokens.refresh_token)

    @pytest.mark.parametrize("token", [None, "", "garbage"])
    def test_logout_tolerates_bad_tokens(self, orchestrator, token):
        orchestrator.logout(token)


class TestProfile:
    def test_update_profile_changes_only_given_fields(self, orchestrator, make_user):
        user = make_user(phone_number="111")
        password_hash = user.password_hash

        updated = orchestrator.update_profile(
            user.id, ProfileUpdateRequest(full_name="  New Name  ", year="4th")
        )

        assert updated.full_name == "New Name"
        assert updated.year == "4th"
        assert updated.phone_number == "111"
        assert updated.password_hash == password_hash

    def test_update_profile_unknown_user(self, orchestrator):
        with pytest.raises(AccountNotFoundError):
            orchestrator.update_profile("missing", ProfileUpdateRequest(full_name="X"))


class TestFederatedCallback:
    def profile(self, **overrides) -> GoogleProfile:
        fields = {
            "google_id": "g-100",
            "email": "test@example.com",
            "name": "Google Student",
            "email_verified": True,
        }
        fields.update(overrides)
        return GoogleProfile(**fields)

    def test_creates_verified_federated_user(self, orchestrator, db):
        result = orchestrator.federated_callback(self.profile(email="new@gmail.com"))

        user = result.user
        assert user.provider == AuthProvider.GOOGLE
        assert user.password_hash is None
        assert user.email_verified is True
        assert user.student_id.startswith("G-")
        assert result.tokens is not None

    def test_links_and_verifies_existing_unverified_account(self, orchestrator, outbox):
        """Google attests the email: pending challenge is dropped, account verified."""
        user = register(orchestrator, "test@example.com")

        result = orchestrator.federated_callback(self.profile())

        assert result.user.id == user.id
        assert user.google_id == "g-100"
        assert user.email_verified is True
        assert user.otp_challenge is None
        assert user.provider == AuthProvider.GOOGLE

    def test_unverified_registrant_password_dropped_on_link(self, orchestrator, outbox):
        """Someone who registered the address without verifying it cannot log in afterwards."""
        register(orchestrator, "victim@gmail.com", password="attacker-pw")

        result = orchestrator.federated_callback(self.profile(email="victim@gmail.com"))

        assert result.user.password_hash is None
        with pytest.raises(InvalidCredentialsError):
            orchestrator.login("victim@gmail.com", "attacker-pw")

    def test_verified_account_keeps_password_on_link(self, orchestrator, make_user):
        user = make_user()

        orchestrator.federated_callback(self.profile())

        assert user.google_id == "g-100"
        assert user.provider == AuthProvider.LOCAL
        assert orchestrator.login("test@example.com", DEFAULT_PASSWORD).tokens is not None

    def test_returning_google_user_gets_new_session(self, orchestrator):
        first = orchestrator.federated_callback(self.profile())
        second = orchestrator.federated_callback(self.profile())

        assert first.user.id == second.user.id
        with pytest.raises(RevokedError):
            orchestrator.refresh(first.tokens.refresh_token)

    def test_unverified_google_email_rejected(self, orchestrator):
        with pytest.raises(InvalidCredentialsError):
            orchestrator.federated_callback(self.profile(email_verified=False))
