"""Session management using signed JWT tokens.

Sessions are stored as signed JWT tokens in HTTP-only cookies. The server
keeps no session store: a session is valid exactly when its signature checks
out and it has not expired.

## Security

- Tokens are signed (HS256) with the application secret key
- Tokens expire after a configurable period (default: 7 days)
- Cookies are HTTP-only to prevent XSS access
- Cookies are Secure in production (HTTPS only)
- SameSite=Lax to prevent CSRF

## Token Structure

```json
{
  "sub": "42",
  "iat": 1234567890,
  "exp": 1235172690,
  "type": "session"
}
```

`sub` is the user's numeric id, never the username, so renaming a user does
not move their sessions to someone else.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from starlette.responses import Response

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_TYPE = "session"


@dataclass(frozen=True)
class SessionData:
    """Data stored in the session token."""

    user_id: int
    issued_at: datetime
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        """Check if the session has expired."""
        return datetime.now(timezone.utc) > self.expires_at


def _has_canonical_signature(token: str) -> bool:
    """Reject signatures that only decode to the right bytes.

    base64 decoding ignores unused trailing bits, so two different final
    characters can carry the same signature. Requiring the canonical
    encoding makes every single-character change to a token invalid.
    """
    try:
        signature = token.rsplit(".", 1)[1]
        raw = base64.urlsafe_b64decode(signature + "=" * (-len(signature) % 4))
    except (IndexError, ValueError):
        return False
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") == signature


class SessionCodec:
    """Issues and parses session tokens and the cookie that carries them."""

    def __init__(
        self,
        secret_key: str,
        max_age_seconds: int,
        cookie_name: str = "user",
        secure: bool = False,
    ):
        self._secret_key = secret_key
        self.max_age_seconds = max_age_seconds
        self.cookie_name = cookie_name
        self.secure = secure

    def issue(self, user_id: int, now: datetime | None = None) -> str:
        """Create a signed session token for a user."""
        now = now or datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=self.max_age_seconds)

        payload = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "type": TOKEN_TYPE,
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def parse(self, token: str | None) -> SessionData | None:
        """Verify and decode a session token.

        Returns:
            SessionData if valid, None if missing, tampered or expired
        """
        if not token:
            return None

        if not _has_canonical_signature(token):
            logger.debug("Session token has a malformed signature")
            return None

        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[ALGORITHM])
        except JWTError as e:
            logger.debug(f"Session token verification failed: {e}")
            return None

        if payload.get("type") != TOKEN_TYPE:
            logger.debug("Invalid token type")
            return None

        try:
            session = SessionData(
                user_id=int(payload["sub"]),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Invalid token payload: {e}")
            return None

        if session.is_expired:
            logger.debug("Session token expired")
            return None

        return session

    def attach(self, response: Response, user_id: int) -> None:
        """Issue a session for a user and set it on the response."""
        response.set_cookie(
            key=self.cookie_name,
            value=self.issue(user_id),
            max_age=self.max_age_seconds,
            path="/",
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )

    def clear(self, response: Response) -> None:
        """Remove the session cookie."""
        response.delete_cookie(
            key=self.cookie_name,
            path="/",
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )
