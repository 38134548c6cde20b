"""Authentication errors.

Every error carries the HTTP status and the machine-readable code that the
request boundary puts into the ``{success: false, message, code}`` envelope.
"""

from fastapi import status


class AuthError(Exception):
    """Base class for recoverable authentication failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "AUTH_ERROR"
    default_message: str = "Authentication failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateAccountError(AuthError):
    code = "DUPLICATE_ACCOUNT"
    default_message = "User already exists with this email or student ID"


class InvalidCredentialsError(AuthError):
    """Unknown email and wrong password are deliberately indistinguishable."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class EmailNotVerifiedError(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "EMAIL_NOT_VERIFIED"
    default_message = "Please verify your email before logging in."

    def __init__(self, email: str, message: str | None = None):
        self.email = email
        super().__init__(message)


class AccountNotFoundError(AuthError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "User not found"


# OTP flow


class OtpError(AuthError):
    """Base class for email verification code failures."""


class OtpNoChallengeError(OtpError):
    code = "OTP_NOT_REQUESTED"
    default_message = "No OTP requested"


class OtpExpiredError(OtpError):
    code = "OTP_EXPIRED"
    default_message = "OTP expired"


class OtpMismatchError(OtpError):
    code = "OTP_INVALID"
    default_message = "Invalid OTP"


# Session / token flow


class SessionError(AuthError):
    """Token or session failure.

    ``clears_session`` tells the request boundary to delete both session
    cookies. It is set for refresh-flow failures only: a missing or expired
    access token says nothing about the refresh cookie the client still holds.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    default_message = "Not authenticated"

    def __init__(self, message: str | None = None, clears_session: bool = True):
        self.clears_session = clears_session
        super().__init__(message)


class UnauthenticatedError(SessionError):
    pass


class RevokedError(SessionError):
    code = "TOKEN_REVOKED"
    default_message = "Refresh token revoked"


class InvalidTokenError(SessionError):
    code = "TOKEN_INVALID"
    default_message = "Invalid token"


class TokenExpiredError(SessionError):
    code = "TOKEN_EXPIRED"
    default_message = "Token expired"
