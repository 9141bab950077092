import logging
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from taskvault.core.config import Settings
from taskvault.core.exceptions import ConfigurationError, ValidationError
from taskvault.core.google_oauth import GoogleOAuthClient, build_authorization_url
from taskvault.core.security import PasswordHasher, TokenService
from taskvault.schemas.user import OAuthCallbackResult
from taskvault.services.auth_service import AuthService
from taskvault.services.user_directory import UserDirectory


logger = logging.getLogger(__name__)


class GoogleAuthService:
    """
    Google sign-in: consent URL and authorization-code callback.

    The callback checks configuration before touching the network, then
    feeds the Google profile into the same provisioning path local
    accounts use.
    """

    def __init__(
        self,
        settings: Settings,
        db: AsyncSession,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.db = db
        self.transport = transport

    def get_authorization_url(self, state: Optional[str] = None) -> str:
        """Consent screen URL for the configured Google client."""
        return build_authorization_url(self.settings, state)

    async def handle_callback(self, code: str) -> OAuthCallbackResult:
        """
        Complete a Google sign-in.

        Args:
            code: Authorization code from the Google redirect.

        Returns:
            OAuthCallbackResult: Bearer token, frontend URL to redirect to,
            and the user's id and name.

        Raises:
            ConfigurationError: If any OAuth setting is missing. Raised
                before any network call.
            ValidationError: If no code was supplied.
            OAuthExchangeError: If Google could not be reached or answered badly.
            ConflictError: If the Google email belongs to another account.
        """
        missing = self.settings.missing_oauth_settings()
        if missing:
            logger.error(f"Missing environment variables for OAuth: {', '.join(missing)}")
            raise ConfigurationError("Missing environment variables for OAuth")

        if not code:
            raise ValidationError("Authorization code missing")

        async with GoogleOAuthClient(self.settings, transport=self.transport) as client:
            access_token = await client.exchange_code(code)
            profile = await client.fetch_profile(access_token)

        logger.info(f"OAuth callback for Google account: {profile.id}")

        auth_service = AuthService(
            UserDirectory(self.db),
            PasswordHasher(self.settings),
            TokenService(self.settings),
        )
        result = await auth_service.provision_google_user(profile)

        logger.info(f"Successfully issued JWT token for user: {result.user.id}")
        return OAuthCallbackResult(
            token=result.token,
            frontend_redirect_url=self.settings.frontend_url,
            id=result.user.id,
            name=result.user.name,
            google_id=profile.id,
        )
