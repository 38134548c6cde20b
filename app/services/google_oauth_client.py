"""Google OAuth 2.0 authorization-code client."""

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

from app.config import Settings
from app.services.shared.http_client import HTTPClient, HTTPClientError

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = "openid email profile"


class GoogleOAuthError(Exception):
    """The Google sign-in could not be completed."""


@dataclass(frozen=True)
class GoogleProfile:
    """Identity attested by Google."""

    google_id: str
    email: str
    name: str | None
    email_verified: bool


class GoogleOAuthClient(HTTPClient):
    """Exchanges authorization codes and fetches the signed-in user's profile."""

    def __init__(self, settings: Settings):
        super().__init__(timeout=10.0)
        self._client_id = settings.google_client_id
        self._client_secret = settings.google_client_secret
        self._redirect_uri = settings.google_redirect_uri

    def authorization_url(self, state: str) -> str:
        """URL of Google's consent screen for this app."""
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": SCOPES,
            "state": state,
            "prompt": "select_account",
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> str:
        """Trade an authorization code for an access token."""
        try:
            payload = self.request_json(
                "POST",
                TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "redirect_uri": self._redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
        except HTTPClientError as e:
            raise GoogleOAuthError(f"Code exchange failed: {e}") from e

        access_token = payload.get("access_token")
        if not access_token:
            raise GoogleOAuthError("Token response missing access_token")
        return access_token

    def fetch_profile(self, access_token: str) -> GoogleProfile:
        """Read the user's OpenID Connect profile."""
        try:
            payload = self.request_json(
                "GET", USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
            )
        except HTTPClientError as e:
            raise GoogleOAuthError(f"Profile request failed: {e}") from e

        if not payload.get("sub") or not payload.get("email"):
            raise GoogleOAuthError("Profile missing subject or email")

        return GoogleProfile(
            google_id=str(payload["sub"]),
            email=payload["email"].strip().lower(),
            name=payload.get("name"),
            email_verified=bool(payload.get("email_verified", False)),
        )

    def profile_from_code(self, code: str) -> GoogleProfile:
        """Complete the authorization-code flow."""
        with self:
            return self.fetch_profile(self.exchange_code(code))
