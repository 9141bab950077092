import logging

from fastapi import APIRouter, Depends, Response, status

from taskvault.core.config import Settings
from taskvault.dependencies.auth import AUTH_COOKIE, get_auth_service, get_settings
from taskvault.schemas.user import (
    LoginData,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
)
from taskvault.services.auth_service import AuthService
from taskvault.utils.cookies import set_session_cookie

# Set up logger
logger = logging.getLogger(__name__)

auth_router = APIRouter()


@auth_router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: RegisterRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Register a new password-based account.

    Args:
        user_data: Name, email and password.

    Returns:
        RegisterResponse: The new user (without password) and a bearer token.
    """
    result = await auth_service.register(user_data.name, user_data.email, user_data.password)
    set_session_cookie(response, AUTH_COOKIE, result.token, settings)

    return RegisterResponse(message="User created successfully", data=result)


@auth_router.post("/auth", response_model=LoginResponse)
async def authenticate_user(
    credentials: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Log in with email and password.

    Unknown emails and wrong passwords get the same 401.

    Returns:
        LoginResponse: A fresh bearer token.
    """
    result = await auth_service.login(credentials.email, credentials.password)
    set_session_cookie(response, AUTH_COOKIE, result.token, settings)

    return LoginResponse(message="User authenticated successfully", data=LoginData(token=result.token))
