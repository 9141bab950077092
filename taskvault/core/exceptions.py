"""
Error taxonomy shared by the auth core and the HTTP layer.

Every component wraps its low-level failures (database, hashing, JWT,
provider HTTP calls) into one of these kinds. The exception handlers in
``taskvault.main`` map each kind to a status code and a stable JSON body.
"""

from typing import Optional

from fastapi import status


class TaskvaultError(Exception):
    """Base class for all application errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Unknown error has occurred"

    def __init__(self, error: Optional[str] = None, message: Optional[str] = None):
        self.error = error or self.message
        if message:
            self.message = message
        super().__init__(self.error)


class ValidationError(TaskvaultError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request data"


class ConflictError(TaskvaultError):
    """A user with the same email already exists."""

    status_code = status.HTTP_409_CONFLICT
    message = "Error in user Registration"

    def __init__(self, error: Optional[str] = "User already Exist", message: Optional[str] = None):
        super().__init__(error, message)


class UnauthorizedError(TaskvaultError):
    """Bad credentials or an unusable bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication failed"


class TokenExpiredError(UnauthorizedError):
    message = "Token expired"


class InvalidTokenError(UnauthorizedError):
    message = "Invalid token"


class NotFoundError(TaskvaultError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"


class ConfigurationError(TaskvaultError):
    """The server is missing a secret or provider credential."""

    message = "Server misconfiguration"


class OAuthExchangeError(TaskvaultError):
    """The identity provider could not be reached or answered badly."""

    message = "Error authenticating with Google"


class RequestAbortedError(TaskvaultError):
    """The client went away before the request finished."""

    # nginx convention for "client closed request"
    status_code = 499
    message = "Request aborted by client"


class UnknownError(TaskvaultError):
    pass
