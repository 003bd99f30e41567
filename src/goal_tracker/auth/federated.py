"""Federated login through OpenID Connect providers.

## Flow

1. `initiate`: resolve the provider, mint a CSRF token and a nonce, capture
   the return-to URL, and build the provider authorization URL. The caller
   stores the returned `AuthState` in the auth-state cookie.
2. The browser signs in at the provider and comes back to the callback.
3. `complete`: check the echoed `state` against the CSRF token, exchange the
   code for tokens, verify the ID token (signature, issuer, audience, nonce),
   and look up the local account by the verified email.

Each step runs only if the one before it succeeded. A CSRF mismatch never
reaches the token endpoint.

## Account linkage

Accounts are never created here. A verified identity with no local account
by that email is a distinct outcome (`FederatedLoginResult.user is None`),
not an error.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from authlib.common.security import generate_token

from goal_tracker.auth.exceptions import (
    AuthorizationDeniedError,
    ClaimsVerificationError,
    CsrfMismatchError,
    InvalidAuthStateError,
    MissingEmailError,
)
from goal_tracker.auth.identity import ExternalClaims, LocalUser, UserLookup
from goal_tracker.auth.providers import ProviderRegistry
from goal_tracker.auth.redirects import capture_return_to, safe_redirect_target
from goal_tracker.auth.state import AuthState

logger = logging.getLogger(__name__)

TOKEN_LENGTH = 43  # ~256 bits from authlib's 62-character alphabet


@dataclass(frozen=True)
class FederatedLoginResult:
    """Outcome of a completed callback."""

    claims: ExternalClaims
    user: LocalUser | None
    next_url: str = "/"

    @property
    def matched(self) -> bool:
        return self.user is not None


def _same_token(received: str, expected: str) -> bool:
    return hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))


def extract_claims(claims: dict, provider: str) -> ExternalClaims:
    """Pull the identity out of verified ID token claims.

    Raises:
        MissingEmailError: If there is no email claim
        ClaimsVerificationError: If the provider marks the email unverified
    """
    email = claims.get("email")
    if not isinstance(email, str) or not email.strip():
        raise MissingEmailError("No email in ID token", provider)

    # Providers that omit email_verified (Microsoft) are trusted on issuance
    if claims.get("email_verified") is False:
        raise ClaimsVerificationError("ID token email is not verified", provider)

    return ExternalClaims(
        email=email.strip(),
        subject=str(claims.get("sub", "")),
        issuer=str(claims.get("iss", "")),
    )


class FederatedLoginFlow:
    """Drives the OIDC authorization code flow for one request at a time."""

    def __init__(self, registry: ProviderRegistry, users: UserLookup):
        self._registry = registry
        self._users = users

    async def initiate(
        self, provider: str, headers: Mapping[str, str]
    ) -> tuple[str, AuthState]:
        """Start a login attempt.

        Returns:
            The provider authorization URL and the state to persist

        Raises:
            UnknownProviderError: If the provider is not configured
            DiscoveryError: If the provider cannot be discovered
        """
        client = await self._registry.resolve(provider)

        state = AuthState(
            provider=provider,
            csrf_token=generate_token(TOKEN_LENGTH),
            nonce=generate_token(TOKEN_LENGTH),
            next_url=capture_return_to(headers),
        )
        logger.info(f"Starting {provider} login")
        return client.authorization_url(state.csrf_token, state.nonce), state

    async def complete(
        self,
        provider: str,
        code: str | None,
        state: str | None,
        auth_state: AuthState | None,
        error: str | None = None,
    ) -> FederatedLoginResult:
        """Finish a login attempt from the provider callback.

        Raises:
            UnknownProviderError: If the provider is not configured
            InvalidAuthStateError: If no usable auth state was presented
            CsrfMismatchError: If `state` differs from the issued CSRF token
            AuthorizationDeniedError: If the provider returned no code
            TokenExchangeError: If the code exchange fails
            ClaimsVerificationError: If the ID token fails verification
            MissingEmailError: If the claims carry no email
        """
        self._registry.get_config(provider)

        if auth_state is None or auth_state.provider != provider:
            raise InvalidAuthStateError("Missing or foreign auth state", provider)

        if not state or not _same_token(state, auth_state.csrf_token):
            raise CsrfMismatchError("Callback state does not match", provider)

        if error or not code:
            raise AuthorizationDeniedError(
                f"Provider returned error {error!r}" if error else "No code in callback",
                provider,
            )

        client = await self._registry.resolve(provider)
        tokens = await client.exchange_code(code)
        raw_claims = client.verify_id_token(
            tokens.id_token, nonce=auth_state.nonce, access_token=tokens.access_token
        )
        claims = extract_claims(raw_claims, provider)
        logger.info(f"{provider} login verified for subject {claims.subject}")

        user = await self._users.get_by_email(claims.email)
        if user is None:
            logger.info(f"No local account for {provider} subject {claims.subject}")
        else:
            logger.info(f"User {user.id} logged in via {provider}")

        return FederatedLoginResult(
            claims=claims,
            user=user,
            next_url=safe_redirect_target(auth_state.next_url),
        )
