"""Identity types shared by the login flows.

The flows never touch the database directly. They read users through the
`UserLookup` protocol, which `goal_tracker.database.users.UserRepository`
implements.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class LocalUser(Protocol):
    """Read-only view of a local user account."""

    id: int
    username: str
    hashed_password: str | None
    email: str | None


class UserLookup(Protocol):
    """User queries the authentication subsystem depends on."""

    async def get_by_id(self, user_id: int) -> LocalUser | None: ...

    async def get_by_username(self, username: str) -> LocalUser | None: ...

    async def get_by_email(self, email: str) -> LocalUser | None: ...


@dataclass(frozen=True)
class ExternalClaims:
    """Verified identity asserted by an OIDC provider."""

    email: str
    subject: str
    issuer: str
