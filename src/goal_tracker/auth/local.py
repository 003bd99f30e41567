"""Username and password login."""

from __future__ import annotations

import logging

from goal_tracker.auth.exceptions import (
    HashingError,
    InvalidCredentialsError,
    LoginValidationError,
)
from goal_tracker.auth.identity import LocalUser, UserLookup
from goal_tracker.auth.passwords import reject_without_hash, verify_user_password

logger = logging.getLogger(__name__)


def validate_login_form(username: str, password: str) -> list[str]:
    """Return a message for every blank field."""
    messages = []
    if not username.strip():
        messages.append("Username cannot be blank.")
    if not password:
        messages.append("Password cannot be blank.")
    return messages


class LocalLoginFlow:
    """Verifies submitted credentials against stored password hashes."""

    def __init__(self, users: UserLookup):
        self._users = users

    async def authenticate(self, username: str, password: str) -> LocalUser:
        """Return the user the credentials belong to.

        Raises:
            LoginValidationError: If a field is blank
            InvalidCredentialsError: For an unknown user, a user without a
                password, or a wrong password
        """
        messages = validate_login_form(username, password)
        if messages:
            raise LoginValidationError(messages)

        username = username.strip()
        user = await self._users.get_by_username(username)
        if user is None:
            reject_without_hash(password)
            logger.warning(f"Login failed for unknown username {username!r}")
            raise InvalidCredentialsError()

        if not user.hashed_password:
            reject_without_hash(password)
            logger.warning(f"Password login attempted for SSO-only user {user.id}")
            raise InvalidCredentialsError()

        try:
            verified = verify_user_password(user, password)
        except HashingError:
            logger.exception(f"Stored password hash for user {user.id} is corrupt")
            verified = False

        if not verified:
            logger.warning(f"Login failed for user {user.id}")
            raise InvalidCredentialsError()

        logger.info(f"User {user.id} logged in with password")
        return user
