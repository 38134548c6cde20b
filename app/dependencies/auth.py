"""Authentication dependencies for auth routes and protected routes."""

from fastapi import BackgroundTasks, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.constants import CookieName
from app.database import get_db
from app.services.auth import AuthOrchestrator, SecurityAuditService, TokenService
from app.services.auth.exceptions import SessionError, UnauthenticatedError
from app.services.google_oauth_client import GoogleOAuthClient

bearer = HTTPBearer(auto_error=False)


def get_auth_orchestrator(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthOrchestrator:
    """Build the per-request orchestrator.

    Emails are handed to ``background_tasks`` and go out after the response.
    """
    ip_address, user_agent = SecurityAuditService.get_request_info(request)
    return AuthOrchestrator(
        db,
        settings,
        background_tasks.add_task,
        ip_address=ip_address,
        user_agent=user_agent,
    )


def get_token_service(settings: Settings = Depends(get_settings)) -> TokenService:
    return TokenService(settings)


def get_google_client(settings: Settings = Depends(get_settings)) -> GoogleOAuthClient:
    return GoogleOAuthClient(settings)


def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    tokens: TokenService = Depends(get_token_service),
) -> str:
    """
    Get the authenticated user's ID from the access token.

    The token is read from the ``access_token`` cookie, falling back to an
    ``Authorization: Bearer`` header.

    Usage:
        @router.get("/protected")
        def protected_route(user_id: str = Depends(get_current_user_id)):
            return {"user_id": user_id}
    """
    token = request.cookies.get(CookieName.ACCESS_TOKEN)
    if not token and credentials:
        token = credentials.credentials
    if not token:
        raise UnauthenticatedError(clears_session=False)

    try:
        return tokens.verify_access(token)
    except SessionError as e:
        # Access failures leave the refresh cookie in place for /refresh
        raise type(e)(e.message, clears_session=False) from e
