"""Authentication router."""

import logging

from fastapi import APIRouter, Cookie, Depends, Request, Response, status

from app.config import Settings, get_settings
from app.constants import CookieName
from app.cookies import clear_auth_cookies, set_auth_cookies
from app.dependencies.auth import get_auth_orchestrator, get_current_user_id
from app.rate_limiter import (
    LOGIN_LIMIT,
    REGISTER_LIMIT,
    RESEND_OTP_LIMIT,
    VERIFY_EMAIL_LIMIT,
    limiter,
)
from app.schemas.auth import (
    AuthResponse,
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
from app.services.auth import AuthOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
def register(
    request: Request,
    data: RegisterRequest,
    auth: AuthOrchestrator = Depends(get_auth_orchestrator),
) -> RegisterResponse:
    """Register a student and email them a verification code. No session yet."""
    user = auth.register(data)
    return RegisterResponse(
        message="Registration successful. Please verify your email.",
        email=user.email,
    )


@router.post("/login", response_model=AuthResponse)
@limiter.limit(LOGIN_LIMIT)
def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    auth: AuthOrchestrator = Depends(get_auth_orchestrator),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    """Login and receive session cookies."""
    result = auth.login(data.email, data.password)
    set_auth_cookies(response, result.tokens, settings)
    return AuthResponse(message="Login successful", user=UserProfile.model_validate(result.user))


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    refresh_token: str | None = Cookie(None, alias=CookieName.REFRESH_TOKEN),
    auth: AuthOrchestrator = Depends(get_auth_orchestrator),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """Drop the session (if the token still maps to one) and clear cookies. Always succeeds."""
    auth.logout(refresh_token)
    clear_auth_cookies(response, settings)
    return MessageResponse(message="Logged out successfully")


@router.post("/refresh", response_model=MessageResponse)
def refresh(
    response: Response,
    refresh_token: str | None = Cookie(None, alias=CookieName.REFRESH_TOKEN),
    auth: AuthOrchestrator = Depends(get_auth_orchestrator),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """Rotate the session: new cookies, and the presented refresh token stops working."""
    result = auth.refresh(refresh_token)
    set_auth_cookies(response, result.tokens, settings)
    return MessageResponse(message="Session refreshed")


@router.get("/me", response_model=ProfileResponse)
def get_me(
    user_id: str = Depends(get_current_user_id),
    auth: AuthOrchestrator = Depends(get_auth_orchestrator),
) -> ProfileResponse:
    """Get the current user's profile."""
    return ProfileResponse(user=UserProfile.model_validate(auth.get_profile(user_id)))


@router.post("/verify-email", response_model=AuthResponse)
@limiter.limit(VERIFY_EMAIL_LIMIT)
def verify_email(
    request: Request,
    response: Response,
    data: VerifyEmailRequest,
    auth: AuthOrchestrator = Depends(get_auth_orchestrator),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    """Verify an email with its code; a successful verification also signs the user in."""
    result = auth.verify_email(data.email, data.otp)
    profile = UserProfile.model_validate(result.user)
    if result.already_verified:
        return AuthResponse(message="Email already verified", user=profile)

    set_auth_cookies(response, result.tokens, settings)
    return AuthResponse(message="Email verified successfully", user=profile)


@router.post("/resend-otp", response_model=MessageResponse)
@limiter.limit(RESEND_OTP_LIMIT)
def resend_otp(
    request: Request,
    data: ResendOtpRequest,
    auth: AuthOrchestrator = Depends(get_auth_orchestrator),
) -> MessageResponse:
    """Send a new verification code, replacing the previous one."""
    if not auth.resend_otp(data.email):
        return MessageResponse(message="Email already verified")
    return MessageResponse(message="OTP resent successfully")


@router.put("/profile", response_model=AuthResponse)
def update_profile(
    data: ProfileUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    auth: AuthOrchestrator = Depends(get_auth_orchestrator),
) -> AuthResponse:
    """Update the current user's profile attributes."""
    user = auth.update_profile(user_id, data)
    return AuthResponse(message="Profile updated successfully", user=UserProfile.model_validate(user))
