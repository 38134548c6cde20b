"""Schemas for authentication endpoints.

Request and response bodies are camelCase on the wire; snake_case field
names are accepted too. Request models reject unknown fields so malformed
bodies fail before any side effect.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from app.constants import StudentYear

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_BYTES = 72  # bcrypt input limit


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RequestModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
        use_enum_values=True,
    )


def _require(value: str, label: str) -> str:
    if not value:
        raise ValueError(f"{label} is required")
    return value


def _normalize_email(value: str) -> str:
    return value.strip().lower()


class RegisterRequest(RequestModel):
    """Schema for student registration. Lengths match the ``users`` columns."""

    student_id: str = Field(max_length=64)
    full_name: str = Field(max_length=255)
    email: EmailStr
    password: str
    phone_number: str | None = Field(None, max_length=32)
    department: str = Field(max_length=255)
    year: StudentYear

    @field_validator("student_id")
    @classmethod
    def validate_student_id(cls, v: str) -> str:
        return _require(v, "Student ID")

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        return _require(v, "Full name")

    @field_validator("department")
    @classmethod
    def validate_department(cls, v: str) -> str:
        return _require(v, "Department")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
        return v


class LoginRequest(RequestModel):
    """Schema for password login."""

    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _require(v, "Password")


class VerifyEmailRequest(RequestModel):
    """Schema for submitting an email verification code."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
    )

    email: EmailStr
    otp: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("otp")
    @classmethod
    def validate_otp(cls, v: str) -> str:
        return _require(v, "OTP")


class ResendOtpRequest(RequestModel):
    """Schema for requesting a new verification code."""

    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class ProfileUpdateRequest(RequestModel):
    """Schema for updating non-security profile attributes."""

    full_name: str | None = Field(None, max_length=255)
    phone_number: str | None = Field(None, max_length=32)
    department: str | None = Field(None, max_length=255)
    year: StudentYear | None = None


class UserProfile(CamelModel):
    """Redacted user view returned to clients. Never includes hashes."""

    id: str
    email: str
    full_name: str
    student_id: str
    department: str | None = None
    year: str | None = None
    phone_number: str | None = None
    wallet_balance: float = 0.0
    provider: str
    email_verified: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageResponse(CamelModel):
    """Schema for simple message response."""

    success: bool = True
    message: str


class RegisterResponse(MessageResponse):
    requires_verification: bool = True
    email: str


class AuthResponse(MessageResponse):
    """Response carrying the signed-in (or verified) user's profile."""

    user: UserProfile


class ProfileResponse(CamelModel):
    success: bool = True
    user: UserProfile


class ErrorResponse(CamelModel):
    """Error envelope produced by the application's exception handlers."""

    success: bool = False
    message: str
    code: str | None = None
