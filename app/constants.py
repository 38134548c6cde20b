"""Application constants to avoid magic strings."""

from enum import StrEnum


class StudentYear(StrEnum):
    """Enumerated study year values accepted on registration and profile updates."""

    FIRST = "1st"
    SECOND = "2nd"
    THIRD = "3rd"
    FOURTH = "4th"
    FIFTH = "5th"


class AuthProvider:
    """Identity provider constants."""

    LOCAL = "local"
    GOOGLE = "google"


class AccountState(StrEnum):
    """Lifecycle state of an account within the auth subsystem."""

    UNREGISTERED = "unregistered"
    UNVERIFIED = "unverified"
    VERIFIED = "verified"


class TokenType:
    """JWT ``type`` claim values."""

    ACCESS = "access"
    REFRESH = "refresh"


class CookieName:
    """Session cookie names."""

    ACCESS_TOKEN = "access_token"
    REFRESH_TOKEN = "refresh_token"
    OAUTH_STATE = "oauth_state"
