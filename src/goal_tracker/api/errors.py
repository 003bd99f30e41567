"""Exception handlers mapping authentication failures to responses.

This is the only place authentication errors become HTTP responses. Full
detail goes to the server log; the client sees the error's public message
and nothing else.

| Category   | Response                                   |
|------------|--------------------------------------------|
| caller     | login page with the message, 4xx           |
| security   | login page with a generic message, 400     |
| dependency | error page, 502 (504 on timeout)           |
| internal   | error page, 500                            |

Every mapped response also drops the auth-state cookie, so a failed
callback always consumes it.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse, Response
from starlette import status

from goal_tracker.api.pages import render_error, render_login
from goal_tracker.auth.exceptions import AuthError, ErrorCategory, LoginRequired
from goal_tracker.auth.redirects import login_redirect_url

logger = logging.getLogger(__name__)


def auth_error_response(request: Request, exc: AuthError) -> Response:
    """Build the client-facing response for an authentication error."""
    category = exc.category

    if category == ErrorCategory.SECURITY:
        logger.warning(
            f"Security check failed on {request.url.path}: "
            f"{type(exc).__name__}: {exc}"
        )
    elif category == ErrorCategory.CALLER:
        logger.info(f"Rejected login request: {type(exc).__name__}: {exc}")
    else:
        logger.error(
            f"Login failed on {request.url.path}: {type(exc).__name__}: {exc}",
            exc_info=exc if category == ErrorCategory.INTERNAL else None,
        )

    if category in (ErrorCategory.DEPENDENCY, ErrorCategory.INTERNAL):
        response: Response = render_error(exc.public_message, exc.status_code)
    else:
        response = render_login(
            request.app.state.auth.registry.names,
            alert=exc.public_message,
            status_code=exc.status_code,
        )

    provider = request.path_params.get("provider")
    if provider:
        request.app.state.auth.auth_state_codec.clear(response, provider)
    return response


async def handle_auth_error(request: Request, exc: AuthError) -> Response:
    return auth_error_response(request, exc)


async def handle_login_required(request: Request, exc: LoginRequired) -> Response:
    return RedirectResponse(
        url=login_redirect_url(exc.next_url),
        status_code=status.HTTP_302_FOUND,
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> Response:
    logger.exception(f"Unhandled error on {request.url.path}", exc_info=exc)
    return render_error("Something went wrong.", status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the authentication error handlers on an app."""
    app.add_exception_handler(AuthError, handle_auth_error)
    app.add_exception_handler(LoginRequired, handle_login_required)
    app.add_exception_handler(Exception, handle_unexpected_error)
