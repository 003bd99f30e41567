"""OpenID Connect identity providers.

Implements the authorization code flow against any OIDC-compliant provider
(Google, Microsoft Entra ID, Okta, Keycloak, ...).

## Discovery

The first time a provider is used its metadata is fetched from
`{issuer}/.well-known/openid-configuration`, followed by its signing keys
from `jwks_uri`. Both are cached for the life of the process.

The discovered `issuer` must equal the configured one. Providers with
`trust_discovered_issuer` set (Microsoft, where a tenant domain resolves to
the tenant GUID) may report a different issuer on the same scheme and host;
ID tokens are then checked against the discovered issuer.

## Outbound HTTP

All provider calls use `httpx.AsyncClient` with a bounded timeout and
redirect following disabled. A token endpoint that answers with a redirect
is treated as a failed exchange, never followed.

## Example

```python
registry = ProviderRegistry(settings.oidc_providers)
client = await registry.resolve("google")

url = client.authorization_url(csrf_token, nonce)
# Redirect user to url, then on callback:
tokens = await client.exchange_code(code)
claims = client.verify_id_token(tokens.id_token, nonce, tokens.access_token)
```
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import httpx
from authlib.common.urls import add_params_to_uri
from jose import JWTError, jwt
from jose.exceptions import JOSEError

from goal_tracker.auth.exceptions import (
    ClaimsVerificationError,
    DiscoveryError,
    MissingIdTokenError,
    NonceMismatchError,
    TokenExchangeError,
    UnknownProviderError,
)
from goal_tracker.config import ProviderConfig, Settings

logger = logging.getLogger(__name__)

DISCOVERY_PATH = "/.well-known/openid-configuration"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_SIGNING_ALGORITHMS = ("RS256",)
# Asymmetric algorithms only; HS* would make the client secret a verification key
SUPPORTED_SIGNING_ALGORITHMS = frozenset(
    {"RS256", "RS384", "RS512", "ES256", "ES384", "ES512", "PS256", "PS384", "PS512"}
)


@dataclass(frozen=True)
class ProviderMetadata:
    """Discovered provider endpoints and signing keys."""

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    jwks_uri: str
    jwks: dict[str, Any]
    signing_algorithms: tuple[str, ...] = DEFAULT_SIGNING_ALGORITHMS
    token_auth_methods: tuple[str, ...] = ("client_secret_basic",)

    @classmethod
    def from_discovery(
        cls, document: dict[str, Any], jwks: dict[str, Any]
    ) -> ProviderMetadata:
        algorithms = tuple(
            alg
            for alg in document.get("id_token_signing_alg_values_supported", ())
            if alg in SUPPORTED_SIGNING_ALGORITHMS
        )
        return cls(
            issuer=document["issuer"],
            authorization_endpoint=document["authorization_endpoint"],
            token_endpoint=document["token_endpoint"],
            jwks_uri=document["jwks_uri"],
            jwks=jwks,
            signing_algorithms=algorithms or DEFAULT_SIGNING_ALGORITHMS,
            token_auth_methods=tuple(
                document.get(
                    "token_endpoint_auth_methods_supported", ("client_secret_basic",)
                )
            ),
        )


@dataclass(frozen=True)
class TokenSet:
    """Tokens returned by the token endpoint."""

    access_token: str | None
    id_token: str
    token_type: str
    scope: str


class OIDCClient:
    """A configured provider with its discovered metadata.

    Instances are immutable and safe to share between concurrent requests.
    """

    def __init__(
        self,
        config: ProviderConfig,
        metadata: ProviderMetadata,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.metadata = metadata
        self._timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return self.config.name

    def authorization_url(self, csrf_token: str, nonce: str) -> str:
        """Build the provider authorization URL for the code flow."""
        params = [
            ("response_type", "code"),
            ("client_id", self.config.client_id),
            ("redirect_uri", self.config.redirect_uri),
            ("scope", " ".join(self.config.scopes)),
            ("state", csrf_token),
            ("nonce", nonce),
        ]
        return add_params_to_uri(self.metadata.authorization_endpoint, params)

    async def exchange_code(self, code: str) -> TokenSet:
        """Exchange an authorization code for tokens.

        Raises:
            TokenExchangeError: On transport failure or provider rejection
            MissingIdTokenError: If the response has no ID token
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.config.redirect_uri,
        }
        auth: tuple[str, str] | None = None
        if "client_secret_post" in self.metadata.token_auth_methods:
            data["client_id"] = self.config.client_id
            data["client_secret"] = self.config.client_secret
        else:
            auth = (self.config.client_id, self.config.client_secret)

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=False,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.metadata.token_endpoint,
                    data=data,
                    auth=auth,
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as e:
            raise TokenExchangeError(
                f"Token endpoint timed out: {e}", self.name, timed_out=True
            ) from e
        except httpx.HTTPError as e:
            raise TokenExchangeError(f"Token endpoint unreachable: {e}", self.name) from e

        if response.status_code != 200:
            logger.error(
                f"Token exchange with {self.name} failed: "
                f"{response.status_code} {response.text[:200]}"
            )
            raise TokenExchangeError(
                f"Token exchange failed: {response.status_code}", self.name
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenExchangeError("Token endpoint returned invalid JSON", self.name) from e

        if not isinstance(payload, dict):
            raise TokenExchangeError("Token endpoint returned unexpected JSON", self.name)

        id_token = payload.get("id_token")
        if not id_token:
            raise MissingIdTokenError("No id_token in token response", self.name)

        return TokenSet(
            access_token=payload.get("access_token"),
            id_token=id_token,
            token_type=payload.get("token_type", "Bearer"),
            scope=payload.get("scope", ""),
        )

    def _signing_keys(self, id_token: str) -> dict[str, Any]:
        try:
            header = jwt.get_unverified_header(id_token)
        except JWTError as e:
            raise ClaimsVerificationError(f"Malformed ID token: {e}", self.name) from e

        keys = self.metadata.jwks.get("keys", [])
        kid = header.get("kid")
        if kid is not None:
            keys = [key for key in keys if key.get("kid") == kid]
        if not keys:
            raise ClaimsVerificationError(
                f"No signing key matches ID token kid {kid!r}", self.name
            )
        return {"keys": keys}

    def verify_id_token(
        self,
        id_token: str,
        nonce: str,
        access_token: str | None = None,
    ) -> dict[str, Any]:
        """Verify an ID token and return its claims.

        Checks the signature against the provider's keys, the issuer, the
        audience, expiry, `at_hash` when present, and the nonce.

        Raises:
            ClaimsVerificationError: If any check fails
            NonceMismatchError: If the nonce is missing or differs
        """
        try:
            claims = jwt.decode(
                id_token,
                self._signing_keys(id_token),
                algorithms=list(self.metadata.signing_algorithms),
                audience=self.config.client_id,
                issuer=self.metadata.issuer,
                access_token=access_token,
            )
        except JOSEError as e:
            raise ClaimsVerificationError(
                f"ID token verification failed: {e}", self.name
            ) from e

        token_nonce = claims.get("nonce")
        if not isinstance(token_nonce, str) or not hmac.compare_digest(
            token_nonce.encode("utf-8"), nonce.encode("utf-8")
        ):
            raise NonceMismatchError("ID token nonce does not match", self.name)

        return claims


def _issuer_matches(discovered: str, config: ProviderConfig) -> bool:
    if discovered.rstrip("/") == config.issuer_url.rstrip("/"):
        return True
    if not config.trust_discovered_issuer:
        return False
    found, expected = urlsplit(discovered), urlsplit(config.issuer_url)
    return (found.scheme, found.netloc) == (expected.scheme, expected.netloc)


class ProviderRegistry:
    """Resolves provider names to discovered OIDC clients.

    Configuration is fixed at construction. Discovery runs on first use of a
    provider; no lock is held across the network calls, so concurrent first
    requests may each fetch, and the first to finish is the one cached.
    """

    def __init__(
        self,
        providers: Iterable[ProviderConfig],
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._configs = {provider.name: provider for provider in providers}
        self._timeout = timeout
        self._transport = transport
        self._clients: dict[str, OIDCClient] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ProviderRegistry:
        return cls(
            settings.oidc_providers,
            timeout=settings.oidc_http_timeout_seconds,
            transport=transport,
        )

    @property
    def names(self) -> list[str]:
        """Configured provider names."""
        return sorted(self._configs)

    def get_config(self, name: str) -> ProviderConfig:
        """Look up a provider's configuration without any network call.

        Raises:
            UnknownProviderError: If the name is not configured
        """
        config = self._configs.get(name)
        if config is None:
            raise UnknownProviderError(name)
        return config

    async def resolve(self, name: str) -> OIDCClient:
        """Get the client for a provider, discovering it on first use.

        Raises:
            UnknownProviderError: If the name is not configured
            DiscoveryError: If metadata or keys cannot be fetched or parsed
        """
        config = self.get_config(name)

        client = self._clients.get(name)
        if client is not None:
            return client

        metadata = await self._discover(config)
        client = OIDCClient(
            config, metadata, timeout=self._timeout, transport=self._transport
        )
        return self._clients.setdefault(name, client)

    async def _discover(self, config: ProviderConfig) -> ProviderMetadata:
        discovery_url = config.issuer_url.rstrip("/") + DISCOVERY_PATH
        logger.info(f"Discovering OIDC provider {config.name} at {discovery_url}")

        async with httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=False,
            transport=self._transport,
        ) as client:
            document = await self._fetch_json(client, discovery_url, config.name)

            try:
                jwks_uri = document["jwks_uri"]
            except KeyError as e:
                raise DiscoveryError(
                    "Discovery document has no jwks_uri", config.name
                ) from e
            jwks = await self._fetch_json(client, jwks_uri, config.name)

        if not isinstance(jwks.get("keys"), list):
            raise DiscoveryError("JWKS document has no keys", config.name)

        try:
            metadata = ProviderMetadata.from_discovery(document, jwks)
        except (KeyError, TypeError) as e:
            raise DiscoveryError(
                f"Discovery document incomplete: missing {e}", config.name
            ) from e

        if not _issuer_matches(metadata.issuer, config):
            raise DiscoveryError(
                f"Discovered issuer {metadata.issuer!r} does not match "
                f"configured issuer {config.issuer_url!r}",
                config.name,
            )

        logger.info(f"OIDC provider {config.name} discovered")
        return metadata

    async def _fetch_json(
        self, client: httpx.AsyncClient, url: str, provider: str
    ) -> dict[str, Any]:
        try:
            response = await client.get(url)
        except httpx.TimeoutException as e:
            raise DiscoveryError(
                f"Timed out fetching {url}: {e}", provider, timed_out=True
            ) from e
        except httpx.HTTPError as e:
            raise DiscoveryError(f"Failed to fetch {url}: {e}", provider) from e

        if response.status_code != 200:
            raise DiscoveryError(
                f"Fetching {url} returned {response.status_code}", provider
            )

        try:
            data = response.json()
        except ValueError as e:
            raise DiscoveryError(f"Invalid JSON from {url}", provider) from e

        if not isinstance(data, dict):
            raise DiscoveryError(f"Unexpected JSON from {url}", provider)
        return data
