"""Local authentication routes.

Handles the login page, username/password login and logout.

## Endpoints

1. GET /login - Render the login page (redirects home if already logged in)
2. POST /login - Check credentials and set the session cookie
3. GET /logout - Clear the session cookie

## Return-to URL

The login page is reached as `/login?next_url=/somewhere`. When its form is
posted the browser sends that URL as the `Referer`, and `next_url` is read
back from there.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse, Response
from starlette import status

from goal_tracker.api.dependencies import (
    get_local_login_flow,
    get_provider_registry,
    get_session_codec,
    get_session_data,
)
from goal_tracker.api.pages import render_login
from goal_tracker.auth.local import LocalLoginFlow
from goal_tracker.auth.providers import ProviderRegistry
from goal_tracker.auth.redirects import capture_return_to
from goal_tracker.auth.session import SessionCodec, SessionData

logger = logging.getLogger(__name__)

router = APIRouter()

LOGIN_REQUIRED_ALERT = "Please log in to continue."


@router.get("/login")
async def login_page(
    alert: bool = False,
    session: SessionData | None = Depends(get_session_data),
    registry: ProviderRegistry = Depends(get_provider_registry),
) -> Response:
    """Render the login page.

    A visitor who already holds a valid session is sent home.
    """
    if session is not None:
        return RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)

    return render_login(registry.names, alert=LOGIN_REQUIRED_ALERT if alert else None)


@router.post("/login")
async def login(
    request: Request,
    username: str = Form(default=""),
    password: str = Form(default=""),
    flow: LocalLoginFlow = Depends(get_local_login_flow),
    codec: SessionCodec = Depends(get_session_codec),
) -> RedirectResponse:
    """Log in with username and password.

    Failures raise and are rendered by the app's error handlers.
    """
    user = await flow.authenticate(username, password)

    response = RedirectResponse(
        url=capture_return_to(request.headers),
        status_code=status.HTTP_302_FOUND,
    )
    codec.attach(response, user.id)
    return response


@router.get("/logout")
async def logout(
    session: SessionData | None = Depends(get_session_data),
    codec: SessionCodec = Depends(get_session_codec),
) -> RedirectResponse:
    """Log out the current user by clearing the session cookie."""
    if session:
        logger.info(f"User {session.user_id} logged out")

    response = RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
    codec.clear(response)
    return response
