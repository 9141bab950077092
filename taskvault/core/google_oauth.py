import logging
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

import httpx
from pydantic import ValidationError as PydanticValidationError

from taskvault.core.config import Settings
from taskvault.core.exceptions import ConfigurationError, OAuthExchangeError
from taskvault.schemas.user import GoogleProfile


logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v1/userinfo"

GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
]


def build_authorization_url(settings: Settings, state: Optional[str] = None) -> str:
    """
    Generate the Google OAuth2 consent screen URL.

    Args:
        settings: Application settings holding the client id and redirect URI.
        state: Optional random string echoed back on the callback for CSRF protection.

    Returns:
        str: Google OAuth URL.

    Raises:
        ConfigurationError: If the client id or redirect URI is missing.
    """
    if not settings.google_client_id or not settings.google_redirect_uri:
        raise ConfigurationError("Google OAuth2 not configured")

    params = {
        "response_type": "code",
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "scope": " ".join(GOOGLE_SCOPES),
        "access_type": "offline",
        "prompt": "consent",
    }
    if state:
        params["state"] = state

    return f"{GOOGLE_AUTH_URL}?{urlencode(params, quote_via=quote)}"


class GoogleOAuthClient:
    """
    HTTP client wrapper for the Google OAuth2 endpoints.

    Every failure talking to Google, whether transport, timeout, status or
    payload shape, is raised as ``OAuthExchangeError``. No retries.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client_id = settings.google_client_id
        self.client_secret = settings.google_client_secret
        self.redirect_uri = settings.google_redirect_uri

        self.client = httpx.AsyncClient(
            headers={"Accept": "application/json"},
            timeout=settings.google_http_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.client.aclose()

    def _handle_response(self, response: httpx.Response, step: str) -> Dict[str, Any]:
        """
        Check a Google response and decode its JSON body.

        Args:
            response: HTTP response from Google.
            step: Human-readable name of the call, for logs and errors.

        Returns:
            Dict containing response data.

        Raises:
            OAuthExchangeError: On a non-2xx status or a non-JSON body.
        """
        if not response.is_success:
            logger.error(f"Google {step} failed ({response.status_code}): {response.text}")
            raise OAuthExchangeError(f"Google {step} failed with status {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            logger.error(f"Invalid JSON response from Google {step}: {response.text}")
            raise OAuthExchangeError(f"Invalid response from Google {step}")

        if not isinstance(data, dict):
            logger.error(f"Unexpected payload from Google {step}: {data!r}")
            raise OAuthExchangeError(f"Invalid response from Google {step}")

        return data

    async def _send(self, step: str, method: str, url: str, **kwargs) -> Dict[str, Any]:
        logger.info(f"Making {method} request to Google {step}")
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException:
            logger.error(f"Timeout during Google {step}")
            raise OAuthExchangeError(f"Google {step} timed out")
        except httpx.HTTPError as e:
            logger.error(f"HTTP error during Google {step}: {e}")
            raise OAuthExchangeError(f"Could not reach Google for {step}")
        return self._handle_response(response, step)

    async def exchange_code(self, code: str) -> str:
        """
        Exchange an authorization code for an access token.

        Args:
            code: Authorization code from the Google redirect.

        Returns:
            str: Short-lived access token.

        Raises:
            OAuthExchangeError: If the call fails or no access token is returned.
        """
        token_info = await self._send(
            "token exchange",
            "POST",
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
        )

        access_token = token_info.get("access_token")
        if not access_token:
            logger.error(f"Google token response without access_token: {token_info.get('error')}")
            raise OAuthExchangeError("Access token missing from Google response")

        return access_token

    async def fetch_profile(self, access_token: str) -> GoogleProfile:
        """
        Fetch the signed-in user's profile.

        Args:
            access_token: Token returned by ``exchange_code``.

        Returns:
            GoogleProfile: Google account id, name and email.

        Raises:
            OAuthExchangeError: If the call fails or the profile is incomplete.
        """
        userinfo = await self._send(
            "profile fetch",
            "GET",
            GOOGLE_USERINFO_URL,
            params={"alt": "json"},
            headers={"Authorization": f"Bearer {access_token}"},
        )

        try:
            return GoogleProfile.from_userinfo(userinfo)
        except (KeyError, TypeError, PydanticValidationError) as e:
            logger.error(f"Incomplete Google profile: {e}")
            raise OAuthExchangeError("Google profile is missing id, name or email")
