import enum

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, Enum, Integer, String
from sqlalchemy.sql import func

from taskvault.db.base import Base


class AuthProvider(enum.Enum):
    """How an account authenticates."""
    LOCAL = "local"
    GOOGLE = "google"


class User(Base):
    """
    User model for both password-based and Google accounts.

    Email is unique across providers; the database constraint is what
    enforces it. Local accounts carry a password hash, Google accounts
    carry the Google account id instead.
    """

    __tablename__ = "users"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(320), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=True)
    provider = Column(Enum(AuthProvider, name="auth_provider"), nullable=False, default=AuthProvider.LOCAL)
    google_sub = Column(String(64), unique=True, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "(provider = 'LOCAL' AND password_hash IS NOT NULL) "
            "OR (provider = 'GOOGLE' AND google_sub IS NOT NULL)",
            name="ck_users_provider_credentials",
        ),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} provider={self.provider.value if self.provider else None}>"
