"""Test doubles shared by the test modules.

- FakeUserStore stands in for UserRepository
- FakeProvider is an OIDC provider served through httpx.MockTransport
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from jose import jwt

SECRET_KEY = "test-secret-key-at-least-32-characters-long"
ISSUER = "https://idp.example.com"
CLIENT_ID = "test-client-id"
CLIENT_SECRET = "test-client-secret"
KEY_ID = "test-key"


@dataclass
class FakeUser:
    id: int
    username: str
    hashed_password: str | None = None
    email: str | None = None


class FakeUserStore:
    """In-memory stand-in for UserRepository."""

    def __init__(self, users: list[FakeUser] | None = None):
        self.users = {user.id: user for user in users or []}
        self.email_lookups: list[str] = []

    async def get_by_id(self, user_id: int) -> FakeUser | None:
        return self.users.get(user_id)

    async def get_by_username(self, username: str) -> FakeUser | None:
        return next(
            (u for u in self.users.values() if u.username == username), None
        )

    async def get_by_email(self, email: str) -> FakeUser | None:
        self.email_lookups.append(email)
        return next(
            (
                u
                for u in self.users.values()
                if u.email and u.email.lower() == email.lower()
            ),
            None,
        )


class FakeProvider:
    """A scriptable OIDC provider served through httpx.MockTransport."""

    def __init__(self, signing_key: dict[str, Any]):
        self.signing_key = signing_key
        self.requests: list[httpx.Request] = []
        self.nonce = "expected-nonce"
        self.email: str | None = "alice@example.com"
        self.claim_overrides: dict[str, Any] = {}
        self.token_status = 200
        self.token_headers: dict[str, str] = {}
        self.include_id_token = True
        self.discovery_status = 200
        self.discovery_overrides: dict[str, Any] = {}
        self.transport = httpx.MockTransport(self.handle)

    @property
    def token_calls(self) -> int:
        return sum(1 for r in self.requests if r.url.path == "/token")

    @property
    def discovery_calls(self) -> int:
        return sum(
            1
            for r in self.requests
            if r.url.path.endswith("/.well-known/openid-configuration")
        )

    def discovery_document(self) -> dict[str, Any]:
        document = {
            "issuer": ISSUER,
            "authorization_endpoint": f"{ISSUER}/authorize",
            "token_endpoint": f"{ISSUER}/token",
            "jwks_uri": f"{ISSUER}/jwks",
            "id_token_signing_alg_values_supported": ["RS256"],
            "token_endpoint_auth_methods_supported": ["client_secret_post"],
        }
        document.update(self.discovery_overrides)
        return document

    def make_id_token(self, private_pem: bytes | None = None, **overrides: Any) -> str:
        now = datetime.now(timezone.utc)
        claims: dict[str, Any] = {
            "iss": ISSUER,
            "aud": CLIENT_ID,
            "sub": "provider-subject-1",
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=5)).timestamp()),
            "nonce": self.nonce,
            "email_verified": True,
        }
        if self.email is not None:
            claims["email"] = self.email
        claims.update(self.claim_overrides)
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        return jwt.encode(
            claims,
            private_pem or self.signing_key["private_pem"],
            algorithm="RS256",
            headers={"kid": KEY_ID},
        )

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/.well-known/openid-configuration"):
            if self.discovery_status != 200:
                return httpx.Response(self.discovery_status, text="unavailable")
            return httpx.Response(200, json=self.discovery_document())

        if path == "/jwks":
            return httpx.Response(200, json={"keys": [self.signing_key["public_jwk"]]})

        if path == "/token" and request.method == "POST":
            if self.token_status != 200:
                return httpx.Response(
                    self.token_status,
                    headers=self.token_headers,
                    json={"error": "invalid_grant"},
                )
            body: dict[str, Any] = {
                "access_token": "test-access-token",
                "token_type": "Bearer",
                "expires_in": 3600,
            }
            if self.include_id_token:
                body["id_token"] = self.make_id_token()
            return httpx.Response(200, json=body)

        return httpx.Response(404, text="not found")


def set_cookie_headers(response: httpx.Response, name: str) -> list[str]:
    """Set-Cookie headers on a response for one cookie name."""
    return [
        header
        for header in response.headers.get_list("set-cookie")
        if header.startswith(f"{name}=")
    ]
