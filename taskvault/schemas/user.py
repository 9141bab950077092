from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class TokenClaims(BaseModel):
    """Identity claims carried by a bearer token."""
    id: int
    name: str
    email: str


class RegisterRequest(BaseModel):
    """Schema for the registration form."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    """Schema for the login form."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class LocalUserCreate(BaseModel):
    """A password-based account about to be stored."""
    provider: Literal["local"] = "local"
    name: str
    email: str
    password_hash: str


class GoogleUserCreate(BaseModel):
    """A Google account about to be stored. Carries no password."""
    provider: Literal["google"] = "google"
    name: str
    email: str
    google_sub: str


UserCreate = Union[LocalUserCreate, GoogleUserCreate]


class UserResponse(BaseModel):
    """Schema for user response to client. Never includes the password."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class GoogleProfile(BaseModel):
    """The subset of the Google userinfo payload the app relies on."""
    id: str
    name: str
    email: str

    @classmethod
    def from_userinfo(cls, payload: dict) -> "GoogleProfile":
        # Google sends numeric account ids as strings
        return cls(id=str(payload["id"]), name=payload["name"], email=payload["email"])


class AuthResult(BaseModel):
    """Outcome of a successful registration, login or OAuth provisioning."""
    user: UserResponse
    token: str


class LoginData(BaseModel):
    token: str


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    data: AuthResult


class LoginResponse(BaseModel):
    success: bool = True
    message: str
    data: LoginData


class OAuthCallbackResult(BaseModel):
    """What the Google callback hands back to the HTTP layer."""
    token: str
    frontend_redirect_url: str
    id: int
    name: str
    google_id: Optional[str] = None
