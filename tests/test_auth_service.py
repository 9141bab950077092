"""
Tests for registration, login and Google account provisioning.
"""

import pytest
from sqlalchemy import func, select

from taskvault.core.exceptions import ConflictError, UnauthorizedError, ValidationError
from taskvault.core.security import PasswordHasher, TokenService
from taskvault.models.user import User
from taskvault.schemas.user import GoogleProfile, TokenClaims
from taskvault.services.auth_service import AuthService
from taskvault.services.user_directory import UserDirectory


@pytest.fixture
def auth_service(settings, db_session):
    return AuthService(UserDirectory(db_session), PasswordHasher(settings), TokenService(settings))


@pytest.fixture
def tokens(settings):
    return TokenService(settings)


async def _count_users(db) -> int:
    result = await db.execute(select(func.count()).select_from(User))
    return result.scalar_one()


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_returns_user_and_token(self, auth_service, tokens):
        result = await auth_service.register("Ana", "ana@x.com", "password123")

        assert result.user.model_dump() == {"id": 1, "name": "Ana", "email": "ana@x.com"}
        assert tokens.verify(result.token) == TokenClaims(id=1, name="Ana", email="ana@x.com")

    @pytest.mark.asyncio
    async def test_password_is_stored_hashed(self, auth_service, db_session, settings):
        await auth_service.register("Ana", "ana@x.com", "password123")
        user = await UserDirectory(db_session).find_by_email("ana@x.com")

        assert user.password_hash != "password123"
        assert PasswordHasher(settings).verify("password123", user.password_hash)

    @pytest.mark.asyncio
    async def test_second_registration_conflicts(self, auth_service, db_session):
        await auth_service.register("Ana", "ana@x.com", "password123")

        with pytest.raises(ConflictError):
            await auth_service.register("Ana Two", "ana@x.com", "different-password")
        assert await _count_users(db_session) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,email,password", [
        ("", "ana@x.com", "password123"),
        ("Ana", "", "password123"),
        ("Ana", "ana@x.com", ""),
    ])
    async def test_missing_fields(self, auth_service, db_session, name, email, password):
        with pytest.raises(ValidationError):
            await auth_service.register(name, email, password)
        assert await _count_users(db_session) == 0


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_with_correct_password(self, auth_service, tokens):
        registered = await auth_service.register("Ana", "ana@x.com", "password123")
        result = await auth_service.login("ana@x.com", "password123")

        assert tokens.verify(result.token) == TokenClaims(id=registered.user.id, name="Ana", email="ana@x.com")

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, auth_service):
        await auth_service.register("Ana", "ana@x.com", "password123")

        with pytest.raises(UnauthorizedError) as wrong_password:
            await auth_service.login("ana@x.com", "wrongpass")
        with pytest.raises(UnauthorizedError) as unknown_email:
            await auth_service.login("nobody@x.com", "password123")

        assert wrong_password.value.error == unknown_email.value.error == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_missing_fields(self, auth_service):
        with pytest.raises(ValidationError):
            await auth_service.login("", "password123")
        with pytest.raises(ValidationError):
            await auth_service.login("ana@x.com", "")

    @pytest.mark.asyncio
    async def test_google_account_cannot_log_in_with_password(self, auth_service):
        await auth_service.provision_google_user(GoogleProfile(id="1082", name="Ana", email="ana@x.com"))

        with pytest.raises(UnauthorizedError):
            await auth_service.login("ana@x.com", "password123")


class TestProvisionGoogleUser:
    @pytest.mark.asyncio
    async def test_creates_then_reuses_account(self, auth_service, db_session, tokens):
        profile = GoogleProfile(id="1082", name="Ana", email="ana@x.com")

        first = await auth_service.provision_google_user(profile)
        second = await auth_service.provision_google_user(profile)

        assert first.user.id == second.user.id
        assert await _count_users(db_session) == 1
        assert tokens.verify(second.token).email == "ana@x.com"

    @pytest.mark.asyncio
    async def test_email_owned_by_local_account_conflicts(self, auth_service):
        await auth_service.register("Ana", "ana@x.com", "password123")

        with pytest.raises(ConflictError):
            await auth_service.provision_google_user(GoogleProfile(id="1082", name="Ana", email="ana@x.com"))
