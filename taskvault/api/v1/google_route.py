import logging
import secrets
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse, RedirectResponse

from taskvault.core.config import Settings
from taskvault.core.exceptions import RequestAbortedError, TaskvaultError
from taskvault.dependencies.auth import AUTH_COOKIE, get_google_auth_service, get_settings
from taskvault.services.google_auth_service import GoogleAuthService
from taskvault.utils.cookies import set_session_cookie
from taskvault.utils.disconnect import run_unless_disconnected

# Set up logger
logger = logging.getLogger(__name__)

google_router = APIRouter()

STATE_COOKIE = "oauthState"
STATE_COOKIE_MAX_AGE = 600
GOOGLE_FAILURE_MESSAGE = "Error authenticating with Google"


@google_router.get("/google", response_class=RedirectResponse)
async def google_auth(
    service: GoogleAuthService = Depends(get_google_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Initiate Google OAuth2 login flow.

    Generates a state token for CSRF protection, remembers it in a
    short-lived cookie and redirects to Google.
    """
    # Generate random state for CSRF protection
    state = secrets.token_urlsafe(32)

    response = RedirectResponse(url=service.get_authorization_url(state), status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        key=STATE_COOKIE,
        value=state,
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )
    return response


@google_router.get("/google/callback")
async def google_auth_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    service: GoogleAuthService = Depends(get_google_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Handle Google OAuth2 callback.

    Exchanges the code, provisions the user, sets the auth cookies and
    redirects to the frontend. Any failure is answered in plain text and
    never redirects.

    Args:
        code: Authorization code from Google.
        state: State parameter for CSRF protection.
        error: Error from Google OAuth.
    """
    if error:
        logger.warning(f"Google returned an OAuth error: {error}")
        return PlainTextResponse(GOOGLE_FAILURE_MESSAGE, status_code=status.HTTP_400_BAD_REQUEST)

    expected_state = request.cookies.get(STATE_COOKIE)
    if not state or not expected_state or not secrets.compare_digest(state, expected_state):
        logger.warning("OAuth callback rejected: state mismatch")
        return PlainTextResponse("Invalid OAuth state", status_code=status.HTTP_400_BAD_REQUEST)

    try:
        result = await run_unless_disconnected(request, service.handle_callback(code))
    except RequestAbortedError:
        raise
    except TaskvaultError as e:
        logger.error(f"Google sign-in failed ({type(e).__name__}): {e.error}")
        return PlainTextResponse(GOOGLE_FAILURE_MESSAGE, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    response = RedirectResponse(url=result.frontend_redirect_url, status_code=status.HTTP_302_FOUND)
    set_session_cookie(response, AUTH_COOKIE, result.token, settings)
    set_session_cookie(response, "userId", str(result.id), settings)
    set_session_cookie(response, "name", quote(result.name), settings)
    response.delete_cookie(STATE_COOKIE, path="/")
    return response
