"""FastAPI dependencies for authentication.

These dependencies wire the authentication components into route handlers
and gate protected routes on a valid session.

## Usage

```python
from fastapi import Depends
from goal_tracker.api.dependencies import require_user
from goal_tracker.database import User

@router.get("/goals")
async def list_goals(user: User = Depends(require_user)):
    ...
```

An unauthenticated request to such a route never reaches the handler; it is
redirected to `/login?next_url=<requested URI>`.

The process-wide components (session codec, auth-state codec, provider
registry) are built once by `create_app` and kept on `app.state.auth`. They
are immutable after construction and shared by all requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from goal_tracker.auth.exceptions import LoginRequired
from goal_tracker.auth.federated import FederatedLoginFlow
from goal_tracker.auth.identity import LocalUser, UserLookup
from goal_tracker.auth.local import LocalLoginFlow
from goal_tracker.auth.providers import ProviderRegistry
from goal_tracker.auth.session import SessionCodec, SessionData
from goal_tracker.auth.state import AuthStateCodec, create_fernet
from goal_tracker.config import Settings
from goal_tracker.database.connection import get_db_session
from goal_tracker.database.users import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthComponents:
    """Authentication components shared by every request."""

    session_codec: SessionCodec
    auth_state_codec: AuthStateCodec
    registry: ProviderRegistry

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> AuthComponents:
        return cls(
            session_codec=SessionCodec(
                settings.secret_key,
                max_age_seconds=settings.session_max_age_seconds,
                cookie_name=settings.session_cookie_name,
                secure=settings.is_production,
            ),
            auth_state_codec=AuthStateCodec(
                create_fernet(settings.secret_key, settings.encryption_salt),
                max_age_seconds=settings.auth_state_max_age_seconds,
                cookie_name=settings.auth_state_cookie_name,
                secure=settings.is_production,
            ),
            registry=ProviderRegistry.from_settings(settings, transport=transport),
        )


def get_auth_components(request: Request) -> AuthComponents:
    return request.app.state.auth


def get_session_codec(
    components: AuthComponents = Depends(get_auth_components),
) -> SessionCodec:
    return components.session_codec


def get_auth_state_codec(
    components: AuthComponents = Depends(get_auth_components),
) -> AuthStateCodec:
    return components.auth_state_codec


def get_provider_registry(
    components: AuthComponents = Depends(get_auth_components),
) -> ProviderRegistry:
    return components.registry


async def get_user_lookup(
    db: AsyncSession = Depends(get_db_session),
) -> UserLookup:
    return UserRepository(db)


def get_local_login_flow(
    users: UserLookup = Depends(get_user_lookup),
) -> LocalLoginFlow:
    return LocalLoginFlow(users)


def get_federated_login_flow(
    registry: ProviderRegistry = Depends(get_provider_registry),
    users: UserLookup = Depends(get_user_lookup),
) -> FederatedLoginFlow:
    return FederatedLoginFlow(registry, users)


async def get_session_data(
    request: Request,
    codec: SessionCodec = Depends(get_session_codec),
) -> SessionData | None:
    """Extract and verify session data from cookie.

    Returns None if no session or invalid session.
    """
    return codec.parse(request.cookies.get(codec.cookie_name))


async def get_current_user_optional(
    session: SessionData | None = Depends(get_session_data),
    users: UserLookup = Depends(get_user_lookup),
) -> LocalUser | None:
    """Get the current user if logged in, or None.

    Use this for routes that work with or without authentication.
    """
    if session is None:
        return None

    user = await users.get_by_id(session.user_id)
    if user is None:
        logger.warning(f"Session for non-existent user: {session.user_id}")
        return None

    return user


def request_uri(request: Request) -> str:
    """Path and query of the request, as the client sent it."""
    uri = request.url.path
    if request.url.query:
        uri = f"{uri}?{request.url.query}"
    return uri


async def require_user(
    request: Request,
    user: LocalUser | None = Depends(get_current_user_optional),
) -> LocalUser:
    """Get the current authenticated user.

    Raises LoginRequired, which the app turns into a redirect to the login
    page. Use this for routes that require authentication.
    """
    if user is None:
        raise LoginRequired(request_uri(request))

    return user
