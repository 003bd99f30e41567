"""User queries used by authentication and the admin CLI."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import MultipleResultsFound
from sqlalchemy.ext.asyncio import AsyncSession

from goal_tracker.auth.passwords import DEFAULT_ROUNDS, hash_password
from goal_tracker.database.models import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Reads and creates user accounts.

    Implements `goal_tracker.auth.identity.UserLookup`.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, user_id: int) -> User | None:
        return await self._session.get(User, user_id)

    async def get_by_username(self, username: str) -> User | None:
        result = await self._session.execute(
            select(User).where(User.username == username)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Find a user by email, ignoring case.

        An email shared by more than one account matches nobody.
        """
        result = await self._session.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        try:
            return result.scalar_one_or_none()
        except MultipleResultsFound:
            logger.warning("Email matches more than one user; refusing to pick one")
            return None

    async def list(self, limit: int = 5) -> list[User]:
        result = await self._session.execute(
            select(User).order_by(User.id).limit(limit)
        )
        return list(result.scalars())

    async def create(
        self,
        username: str,
        password: str | None = None,
        email: str | None = None,
        rounds: int = DEFAULT_ROUNDS,
    ) -> User:
        """Create and commit a user.

        A missing or empty password leaves password login disabled.

        Raises:
            HashingError: If the password cannot be hashed
        """
        user = User(
            username=username.strip(),
            hashed_password=hash_password(password, rounds) if password else None,
            email=email.strip().lower() if email else None,
        )
        self._session.add(user)
        await self._session.commit()
        await self._session.refresh(user)

        logger.info(f"Created user {user.id}")
        return user
