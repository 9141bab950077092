import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import argon2
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError
from pydantic import ValidationError as PydanticValidationError

from taskvault.core.config import Settings
from taskvault.core.exceptions import InvalidTokenError, TokenExpiredError, UnknownError
from taskvault.schemas.user import TokenClaims


logger = logging.getLogger(__name__)


class PasswordHasher:
    """
    Salted, deliberately slow password hashing backed by argon2id.

    The work factor comes from settings so tests and small deployments
    can lower it.
    """

    def __init__(self, settings: Settings):
        self._hasher = argon2.PasswordHasher(
            time_cost=settings.password_time_cost,
            memory_cost=settings.password_memory_cost,
            parallelism=settings.password_parallelism,
            hash_len=32,
            salt_len=16,
        )

    def hash(self, plaintext: str) -> str:
        """
        Hash a password.

        Args:
            plaintext: The raw password.

        Returns:
            str: Encoded argon2 hash, salt and parameters included.

        Raises:
            UnknownError: If the underlying primitive fails.
        """
        try:
            return self._hasher.hash(plaintext)
        except argon2.exceptions.HashingError as e:
            logger.error(f"Failed to hash password: {e}")
            raise UnknownError("Failed to hash password")

    def verify(self, plaintext: str, hashed: Optional[str]) -> bool:
        """
        Verify a password against a stored hash.

        Malformed or missing hashes count as a mismatch.

        Args:
            plaintext: The raw password.
            hashed: The stored hash.

        Returns:
            bool: True if the password matches the hash.
        """
        if not hashed:
            return False
        try:
            return self._hasher.verify(hashed, plaintext)
        except argon2.exceptions.VerifyMismatchError:
            return False
        except (argon2.exceptions.VerificationError, argon2.exceptions.InvalidHashError) as e:
            logger.error(f"Stored password hash could not be verified: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to verify password: {e}")
            return False


class TokenService:
    """Issues and verifies the signed bearer tokens handed to clients."""

    def __init__(self, settings: Settings):
        # Raises ConfigurationError when no secret is configured
        self._secret = settings.require_token_secret()
        self._algorithm = settings.algorithm
        self._settings = settings

    def issue(self, claims: TokenClaims, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a JWT access token over the identity claims.

        Args:
            claims: Identity to embed (id, name, email).
            expires_delta: Optional custom lifetime; defaults to AUTH_TOKEN_TTL.

        Returns:
            str: Encoded JWT token.
        """
        to_encode: Dict[str, Any] = claims.model_dump()
        expire = datetime.now(timezone.utc) + (expires_delta or self._settings.token_ttl())
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify and decode a JWT token.

        Args:
            token: JWT token to verify.

        Returns:
            TokenClaims: The identity embedded in the token.

        Raises:
            TokenExpiredError: If the token is past its expiration.
            InvalidTokenError: If the token is malformed, tampered with or
                does not carry the identity claims.
        """
        if not token:
            raise InvalidTokenError("No auth token provided")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError("Token expired")
        except JWTError as e:
            logger.debug(f"Rejected bearer token: {e}")
            raise InvalidTokenError("Invalid token")

        try:
            return TokenClaims.model_validate(payload)
        except PydanticValidationError:
            raise InvalidTokenError("Token is missing identity claims")
