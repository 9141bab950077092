"""
Tests for password hashing and bearer tokens.
"""

from datetime import timedelta

import pytest
from jose import jwt

from conftest import make_settings
from taskvault.core.exceptions import (
    ConfigurationError,
    InvalidTokenError,
    TokenExpiredError,
    UnauthorizedError,
)
from taskvault.core.security import PasswordHasher, TokenService
from taskvault.schemas.user import TokenClaims


@pytest.fixture
def hasher(settings):
    return PasswordHasher(settings)


@pytest.fixture
def tokens(settings):
    return TokenService(settings)


CLAIMS = TokenClaims(id=1, name="Ana", email="ana@x.com")


class TestPasswordHasher:
    def test_round_trip(self, hasher):
        hashed = hasher.hash("password123")
        assert hashed != "password123"
        assert hasher.verify("password123", hashed)

    def test_wrong_password(self, hasher):
        assert not hasher.verify("password124", hasher.hash("password123"))

    def test_hashes_are_salted(self, hasher):
        assert hasher.hash("password123") != hasher.hash("password123")

    @pytest.mark.parametrize("stored", ["", None, "not-a-hash", "$2b$10$abcdefghijklmnopqrstuv"])
    def test_malformed_hash_fails_closed(self, hasher, stored):
        assert hasher.verify("password123", stored) is False

    def test_work_factor_comes_from_settings(self):
        hasher = PasswordHasher(make_settings(password_time_cost=2))
        assert "t=2" in hasher.hash("password123")


class TestTokenService:
    def test_round_trip(self, tokens):
        assert tokens.verify(tokens.issue(CLAIMS)) == CLAIMS

    def test_expiration_claim_uses_configured_ttl(self, tokens, settings):
        payload = jwt.get_unverified_claims(tokens.issue(CLAIMS))
        assert {"id", "name", "email", "exp"} <= set(payload)

        short = TokenService(make_settings(auth_token_ttl="1H"))
        short_exp = jwt.get_unverified_claims(short.issue(CLAIMS))["exp"]
        assert payload["exp"] - short_exp == pytest.approx(23 * 3600, abs=5)

    def test_expired_token(self, tokens):
        token = tokens.issue(CLAIMS, expires_delta=timedelta(seconds=-5))
        with pytest.raises(TokenExpiredError):
            tokens.verify(token)

    def test_tampered_token(self, tokens):
        header, payload, signature = tokens.issue(CLAIMS).split(".")
        forged = jwt.encode({"id": 2, "name": "Eve", "email": "eve@x.com"}, "other-secret").split(".")[1]
        with pytest.raises(InvalidTokenError):
            tokens.verify(f"{header}.{forged}.{signature}")

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "Bearer xyz"])
    def test_garbage_token(self, tokens, garbage):
        with pytest.raises(InvalidTokenError):
            tokens.verify(garbage)

    def test_token_signed_with_other_secret(self, tokens):
        other = TokenService(make_settings(secret_key="another-secret"))
        with pytest.raises(InvalidTokenError):
            tokens.verify(other.issue(CLAIMS))

    def test_token_without_identity_claims(self, tokens, settings):
        token = jwt.encode({"sub": "1"}, settings.secret_key, algorithm=settings.algorithm)
        with pytest.raises(InvalidTokenError):
            tokens.verify(token)

    def test_token_errors_are_unauthorized(self):
        assert issubclass(TokenExpiredError, UnauthorizedError)
        assert issubclass(InvalidTokenError, UnauthorizedError)
        assert TokenExpiredError.status_code == InvalidTokenError.status_code == 401

    def test_missing_secret_is_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            TokenService(make_settings(secret_key=None))
        assert exc_info.value.status_code == 500
