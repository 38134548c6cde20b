"""Google sign-in router."""

import logging
import secrets

from fastapi import APIRouter, Cookie, Depends, HTTPException, status
from fastapi.responses import RedirectResponse

from app.config import Settings, get_settings
from app.constants import CookieName
from app.cookies import set_auth_cookies
from app.dependencies.auth import get_auth_orchestrator, get_google_client
from app.services.auth import AuthOrchestrator
from app.services.auth.exceptions import AuthError
from app.services.google_oauth_client import GoogleOAuthClient, GoogleOAuthError
from app.services.repositories import RepositoryError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/oauth", tags=["authentication"])

STATE_COOKIE_MAX_AGE = 600


@router.get("/google")
def google_login(
    google: GoogleOAuthClient = Depends(get_google_client),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Send the browser to Google's consent screen."""
    if not settings.google_oauth_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google sign-in is not configured",
        )

    state = secrets.token_urlsafe(24)
    response = RedirectResponse(google.authorization_url(state), status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        CookieName.OAUTH_STATE,
        state,
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )
    return response


@router.get("/callback")
def google_callback(
    code: str | None = None,
    state: str | None = None,
    expected_state: str | None = Cookie(None, alias=CookieName.OAUTH_STATE),
    google: GoogleOAuthClient = Depends(get_google_client),
    auth: AuthOrchestrator = Depends(get_auth_orchestrator),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Finish Google sign-in and redirect to the dashboard with session cookies."""
    failure = RedirectResponse(
        f"{settings.frontend_url}/login?error=oauth_failed", status_code=status.HTTP_302_FOUND
    )
    failure.delete_cookie(CookieName.OAUTH_STATE, path="/")

    if not code or not state or not expected_state or not secrets.compare_digest(state.encode(), expected_state.encode()):
        logger.warning("Google callback rejected: missing code or state mismatch")
        return failure

    try:
        profile = google.profile_from_code(code)
        result = auth.federated_callback(profile)
    except (GoogleOAuthError, AuthError, RepositoryError) as e:
        logger.warning(f"Google sign-in failed: {e}")
        return failure

    response = RedirectResponse(
        f"{settings.frontend_url}/dashboard", status_code=status.HTTP_302_FOUND
    )
    response.delete_cookie(CookieName.OAUTH_STATE, path="/")
    set_auth_cookies(response, result.tokens, settings)
    return response
