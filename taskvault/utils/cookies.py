from fastapi import Response

from taskvault.core.config import Settings


def set_session_cookie(response: Response, key: str, value: str, settings: Settings) -> None:
    """
    Set an HTTP-only cookie that lives exactly as long as an auth token.

    ``Secure`` is only set in production so local HTTP development works.
    """
    response.set_cookie(
        key=key,
        value=value,
        max_age=int(settings.token_ttl().total_seconds()),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )
