import logging

from fastapi.concurrency import run_in_threadpool

from taskvault.core.exceptions import ConflictError, UnauthorizedError, ValidationError
from taskvault.core.security import PasswordHasher, TokenService
from taskvault.models.user import User
from taskvault.schemas.user import (
    AuthResult,
    GoogleProfile,
    GoogleUserCreate,
    LocalUserCreate,
    TokenClaims,
    UserResponse,
)
from taskvault.services.user_directory import UserDirectory


logger = logging.getLogger(__name__)

# One message for unknown email and wrong password alike
INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    """
    Registration, login and account provisioning.

    Stateless between calls: everything it needs is handed in at
    construction time.
    """

    def __init__(self, directory: UserDirectory, hasher: PasswordHasher, tokens: TokenService):
        self.directory = directory
        self.hasher = hasher
        self.tokens = tokens

    def _authenticate(self, user: User) -> AuthResult:
        claims = TokenClaims(id=user.id, name=user.name, email=user.email)
        return AuthResult(user=UserResponse.model_validate(user), token=self.tokens.issue(claims))

    async def register(self, name: str, email: str, password: str) -> AuthResult:
        """
        Create a password-based account and sign the user in.

        Args:
            name: Display name.
            email: Login email, unique across all accounts.
            password: Plaintext password; only its hash is stored.

        Returns:
            AuthResult: The new user (without password) and a bearer token.

        Raises:
            ValidationError: If any field is empty.
            ConflictError: If the email is already registered.
        """
        if not name or not email or not password:
            raise ValidationError("All fields are required")

        # Friendlier early exit; the unique constraint is what actually guards this
        if await self.directory.find_by_email(email) is not None:
            logger.info("Registration rejected: email already registered")
            raise ConflictError()

        password_hash = await run_in_threadpool(self.hasher.hash, password)
        user = await self.directory.insert(
            LocalUserCreate(name=name, email=email, password_hash=password_hash)
        )

        logger.info(f"Registered user {user.id}")
        return self._authenticate(user)

    async def login(self, email: str, password: str) -> AuthResult:
        """
        Check a user's email and password.

        Args:
            email: Login email.
            password: Plaintext password.

        Returns:
            AuthResult: The user and a fresh bearer token.

        Raises:
            ValidationError: If either field is empty.
            UnauthorizedError: If the credentials do not match an account.
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = await self.directory.find_by_email(email)
        if user is None:
            logger.warning("Login failed: email not found")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if user.password_hash is None:
            logger.warning(f"Login failed: user {user.id} has no local password ({user.provider.value})")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        matches = await run_in_threadpool(self.hasher.verify, password, user.password_hash)
        if not matches:
            logger.warning(f"Login failed: wrong password for user {user.id}")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        logger.info(f"User {user.id} logged in")
        return self._authenticate(user)

    async def provision_google_user(self, profile: GoogleProfile) -> AuthResult:
        """
        Find or create the account behind a Google profile and sign it in.

        Google accounts never get a password. An email already owned by a
        different account is a conflict.

        Args:
            profile: Verified profile returned by Google.

        Returns:
            AuthResult: The user and a fresh bearer token.
        """
        user = await self.directory.find_by_google_sub(profile.id)
        if user is None:
            user = await self.directory.insert(
                GoogleUserCreate(name=profile.name, email=profile.email, google_sub=profile.id)
            )
        else:
            logger.info(f"Found existing Google user: {user.id}")

        return self._authenticate(user)
