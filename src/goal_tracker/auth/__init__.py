"""Authentication for the goal tracker.

Two login paths end in the same signed session cookie:

- Local login: username and password checked against a bcrypt hash
- Federated login: OpenID Connect authorization code flow against a
  configured provider, linked to a local account by verified email

## OIDC Flow

1. User clicks "Sign in with Google"
2. Redirect to the provider with a CSRF token (`state`) and a nonce, both
   kept in an encrypted short-lived cookie
3. Provider redirects back with an authorization code
4. CSRF token checked, code exchanged for tokens
5. ID token verified (signature, issuer, audience, nonce)
6. Local user looked up by email; session cookie set if one exists

## Scopes

We request minimal scopes:
- openid: For authentication
- email: To identify the user

## Security

- Sessions are signed JWTs in HTTP-only cookies, no server-side store
- Return-to URLs are limited to same-origin paths
- Accounts are never created from a provider login
"""

from goal_tracker.auth.exceptions import (
    AuthError,
    ClaimsVerificationError,
    CsrfMismatchError,
    DiscoveryError,
    ErrorCategory,
    HashingError,
    InvalidCredentialsError,
    LoginRequired,
    MissingEmailError,
    TokenExchangeError,
    UnknownProviderError,
)
from goal_tracker.auth.federated import FederatedLoginFlow, FederatedLoginResult
from goal_tracker.auth.local import LocalLoginFlow
from goal_tracker.auth.passwords import hash_password, verify_password
from goal_tracker.auth.providers import OIDCClient, ProviderRegistry
from goal_tracker.auth.redirects import capture_return_to, safe_redirect_target
from goal_tracker.auth.session import SessionCodec, SessionData
from goal_tracker.auth.state import AuthState, AuthStateCodec

__all__ = [
    "AuthError",
    "ClaimsVerificationError",
    "CsrfMismatchError",
    "DiscoveryError",
    "ErrorCategory",
    "HashingError",
    "InvalidCredentialsError",
    "LoginRequired",
    "MissingEmailError",
    "TokenExchangeError",
    "UnknownProviderError",
    "FederatedLoginFlow",
    "FederatedLoginResult",
    "LocalLoginFlow",
    "hash_password",
    "verify_password",
    "OIDCClient",
    "ProviderRegistry",
    "capture_return_to",
    "safe_redirect_target",
    "SessionCodec",
    "SessionData",
    "AuthState",
    "AuthStateCodec",
]
