"""FastAPI application and routes.

## Routes

- / - Home page
- /login, /logout - Username and password login
- /{provider}/login, /{provider}/callback - OpenID Connect login
- /me - The logged-in user's account (requires a session)
- /health - Liveness probe

## Authentication

Protected routes depend on `goal_tracker.api.dependencies.require_user`,
which redirects visitors without a session to the login page.
"""

from goal_tracker.api.app import create_app

__all__ = ["create_app"]
