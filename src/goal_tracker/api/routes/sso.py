"""OpenID Connect login routes.

## OAuth Flow

1. GET /{provider}/login - Redirect to the provider, set the auth-state cookie
2. GET /{provider}/callback - Verify, link by email, set the session cookie

The auth-state cookie is deleted by every callback response, whatever the
outcome.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse, Response
from starlette import status

from goal_tracker.api.dependencies import (
    get_auth_state_codec,
    get_federated_login_flow,
    get_provider_registry,
    get_session_codec,
)
from goal_tracker.api.pages import render_login
from goal_tracker.auth.federated import FederatedLoginFlow
from goal_tracker.auth.providers import ProviderRegistry
from goal_tracker.auth.session import SessionCodec
from goal_tracker.auth.state import AuthStateCodec

logger = logging.getLogger(__name__)

router = APIRouter()

NO_MATCHING_USER_ALERT = "No registered user found"


@router.get("/{provider}/login")
async def sso_login(
    provider: str,
    request: Request,
    flow: FederatedLoginFlow = Depends(get_federated_login_flow),
    state_codec: AuthStateCodec = Depends(get_auth_state_codec),
) -> RedirectResponse:
    """Start an OIDC login by redirecting to the provider."""
    authorization_url, auth_state = await flow.initiate(provider, request.headers)

    response = RedirectResponse(
        url=authorization_url, status_code=status.HTTP_302_FOUND
    )
    state_codec.attach(response, auth_state)
    return response


@router.get("/{provider}/callback")
async def sso_callback(
    provider: str,
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    flow: FederatedLoginFlow = Depends(get_federated_login_flow),
    state_codec: AuthStateCodec = Depends(get_auth_state_codec),
    session_codec: SessionCodec = Depends(get_session_codec),
    registry: ProviderRegistry = Depends(get_provider_registry),
) -> Response:
    """Handle the provider redirect back to us.

    Protocol failures raise and are rendered by the app's error handlers.
    """
    auth_state = state_codec.decode(request.cookies.get(state_codec.cookie_name))

    result = await flow.complete(provider, code, state, auth_state, error=error)

    if result.user is None:
        response: Response = render_login(registry.names, alert=NO_MATCHING_USER_ALERT)
    else:
        response = RedirectResponse(
            url=result.next_url, status_code=status.HTTP_302_FOUND
        )
        session_codec.attach(response, result.user.id)

    state_codec.clear(response, provider)
    return response
