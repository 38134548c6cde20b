"""Pydantic schemas for API request/response validation."""

from app.schemas.auth import (
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    RegisterResponse,
    ResendOtpRequest,
    UserProfile,
    VerifyEmailRequest,
)

__all__ = [
    "AuthResponse",
    "ErrorResponse",
    "LoginRequest",
    "MessageResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "RegisterRequest",
    "RegisterResponse",
    "ResendOtpRequest",
    "UserProfile",
    "VerifyEmailRequest",
]
