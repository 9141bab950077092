import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from taskvault.core.exceptions import ConflictError, UnknownError
from taskvault.models.user import AuthProvider, User
from taskvault.schemas.user import LocalUserCreate, UserCreate


logger = logging.getLogger(__name__)


class UserDirectory:
    """
    Persistence boundary for user accounts.

    Lookups are exact matches. Email uniqueness is enforced by the
    database constraint, so ``insert`` is the only place a ``ConflictError``
    can originate from.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _first(self, statement) -> Optional[User]:
        try:
            result = await self.db.execute(statement)
        except SQLAlchemyError as e:
            logger.error(f"User lookup failed: {e}")
            raise UnknownError("Failed to read user data")
        return result.scalars().first()

    async def find_by_email(self, email: str) -> Optional[User]:
        """Find a user by email, or None."""
        return await self._first(select(User).where(User.email == email))

    async def find_by_id(self, user_id: int) -> Optional[User]:
        """Find a user by primary key, or None."""
        return await self._first(select(User).where(User.id == user_id))

    async def find_by_google_sub(self, google_sub: str) -> Optional[User]:
        """Find a Google account by its Google account id, or None."""
        return await self._first(select(User).where(User.google_sub == google_sub))

    async def insert(self, new_user: UserCreate) -> User:
        """
        Store a new user and return it with its database-assigned id.

        Args:
            new_user: Either a local (password) or a Google account.

        Returns:
            User: The stored user.

        Raises:
            ConflictError: If the email (or Google account) is already taken.
                Nothing is written in that case.
            UnknownError: On any other storage failure.
        """
        if isinstance(new_user, LocalUserCreate):
            user = User(
                name=new_user.name,
                email=new_user.email,
                password_hash=new_user.password_hash,
                provider=AuthProvider.LOCAL,
            )
        else:
            user = User(
                name=new_user.name,
                email=new_user.email,
                google_sub=new_user.google_sub,
                provider=AuthProvider.GOOGLE,
            )

        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info(f"Rejected duplicate {new_user.provider} account: {e.orig}")
            raise ConflictError()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to store user: {e}")
            raise UnknownError("Failed to store user")

        await self.db.refresh(user)
        logger.info(f"Created {new_user.provider} user: {user.id}")
        return user
