"""Session cookie policy."""

from fastapi import Response

from app.config import Settings
from app.constants import CookieName
from app.services.auth.token_service import TokenPair


def _cookie_policy(settings: Settings) -> dict:
    # Cross-site frontend in production needs SameSite=None, which requires Secure
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "none" if settings.is_production else "lax",
        "path": "/",
    }


def set_auth_cookies(response: Response, tokens: TokenPair, settings: Settings) -> None:
    """Set both session cookies, each expiring with its token."""
    policy = _cookie_policy(settings)
    response.set_cookie(
        CookieName.ACCESS_TOKEN, tokens.access_token, expires=tokens.access_expires_at, **policy
    )
    response.set_cookie(
        CookieName.REFRESH_TOKEN, tokens.refresh_token, expires=tokens.refresh_expires_at, **policy
    )


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    policy = _cookie_policy(settings)
    response.delete_cookie(CookieName.ACCESS_TOKEN, **policy)
    response.delete_cookie(CookieName.REFRESH_TOKEN, **policy)
