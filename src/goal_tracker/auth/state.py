"""Encrypted auth-state cookie for the OIDC round trip.

Between `GET /{provider}/login` and `GET /{provider}/callback` the browser
leaves for the identity provider. The CSRF token, nonce and return-to URL
issued at login travel with it in a short-lived cookie instead of a server
side store.

## Security Model

The cookie is Fernet-encrypted (AES-128-CBC + HMAC-SHA256), so the client can
neither read the nonce nor forge a CSRF token. The Fernet timestamp bounds the
cookie's life independently of the browser's `Max-Age`.

The encryption key is derived from the application secret using PBKDF2:
- Salt: `encryption_salt` setting (derived from the secret if unset)
- Iterations: 480,000 (OWASP recommendation for PBKDF2-HMAC-SHA256)
- Key length: 32 bytes (256 bits)
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import asdict, dataclass

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from starlette.responses import Response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthState:
    """Per-attempt values binding an authorization request to its callback."""

    provider: str
    csrf_token: str
    nonce: str
    next_url: str = "/"


def create_fernet(secret_key: str, salt: str) -> Fernet:
    """Create a Fernet cipher from the secret key and salt.

    Uses PBKDF2 to derive a proper encryption key from the secret.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,  # 256 bits for Fernet
        salt=salt.encode("utf-8"),
        iterations=480_000,  # OWASP recommendation
    )

    key = base64.urlsafe_b64encode(kdf.derive(secret_key.encode("utf-8")))
    return Fernet(key)


class AuthStateCodec:
    """Seals `AuthState` into a cookie value and opens it again."""

    def __init__(
        self,
        fernet: Fernet,
        max_age_seconds: int = 600,
        cookie_name: str = "auth_state",
        secure: bool = False,
    ):
        self._fernet = fernet
        self.max_age_seconds = max_age_seconds
        self.cookie_name = cookie_name
        self.secure = secure

    def encode(self, state: AuthState) -> str:
        """Encrypt an auth state into a cookie-safe string."""
        plaintext = json.dumps(asdict(state)).encode("utf-8")
        # Padding is stripped so the value needs no cookie quoting
        return self._fernet.encrypt(plaintext).decode("ascii").rstrip("=")

    def decode(self, value: str | None) -> AuthState | None:
        """Decrypt a cookie value.

        Returns None if the value is missing, tampered, expired or malformed.
        """
        if not value:
            return None

        padded = value + "=" * (-len(value) % 4)
        try:
            plaintext = self._fernet.decrypt(
                padded.encode("ascii"), ttl=self.max_age_seconds
            )
        except (InvalidToken, UnicodeEncodeError):
            logger.debug("Auth state cookie could not be decrypted")
            return None

        try:
            data = json.loads(plaintext)
            return AuthState(
                provider=str(data["provider"]),
                csrf_token=str(data["csrf_token"]),
                nonce=str(data["nonce"]),
                next_url=str(data.get("next_url") or "/"),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.debug(f"Auth state cookie payload invalid: {e}")
            return None

    def attach(self, response: Response, state: AuthState) -> None:
        """Set the auth-state cookie on a response.

        The cookie is scoped to the provider's `/{provider}` routes, so no
        other page receives it.
        """
        response.set_cookie(
            key=self.cookie_name,
            value=self.encode(state),
            max_age=self.max_age_seconds,
            path=f"/{state.provider}",
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )

    def clear(self, response: Response, provider: str) -> None:
        """Remove the auth-state cookie set for `provider`."""
        response.delete_cookie(
            key=self.cookie_name,
            path=f"/{provider}",
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )
