from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from taskvault.core.config import Settings
from taskvault.core.exceptions import UnauthorizedError
from taskvault.core.security import PasswordHasher, TokenService
from taskvault.db.session import get_db
from taskvault.services.auth_service import AuthService
from taskvault.services.google_auth_service import GoogleAuthService
from taskvault.services.user_directory import UserDirectory


AUTH_COOKIE = "authToken"

# JWT Bearer token dependency; the auth cookie is accepted as a fallback
bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_token_service(settings: Settings = Depends(get_settings)) -> TokenService:
    return TokenService(settings)


def get_auth_service(
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
    db: AsyncSession = Depends(get_db),
) -> AuthService:
    return AuthService(UserDirectory(db), PasswordHasher(settings), tokens)


def get_google_auth_service(
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
) -> GoogleAuthService:
    return GoogleAuthService(settings, db)


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> int:
    """
    Dependency to get the authenticated user id from the bearer token.

    The token is read from the Authorization header, or from the auth
    cookie when no header is sent. Verification is local; no database
    lookup happens here.

    Args:
        request: Incoming request, for the cookie fallback.
        credentials: JWT token from Authorization header.
        tokens: Token verifier.

    Returns:
        int: Authenticated user id.

    Raises:
        UnauthorizedError: If no token is sent, or it is invalid or expired.
        ConfigurationError: If the server has no signing secret.
    """
    token = credentials.credentials if credentials else request.cookies.get(AUTH_COOKIE)
    if not token:
        raise UnauthorizedError("No auth token provided", message="Authentication credentials not provided")

    return tokens.verify(token).id
