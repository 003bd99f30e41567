"""Return-to URL handling across the login round trip.

The page a user was headed to travels as a `next_url` query parameter on the
login page. When the login form is posted, or an SSO login is started from
that page, the browser's `Referer` header still carries it, and that is
where it is read back from.

Only same-origin relative paths are ever redirected to. Anything with a
scheme, a host, a protocol-relative `//` prefix, a backslash or a control
character falls back to the application root.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from urllib.parse import parse_qs, quote, urlsplit

logger = logging.getLogger(__name__)

ROOT = "/"
NEXT_URL_PARAM = "next_url"


def is_safe_redirect(url: str | None) -> bool:
    """Check that a URL is a same-origin absolute path."""
    if not url or not url.startswith("/") or url.startswith("//"):
        return False
    if "\\" in url or any(ord(c) < 32 or ord(c) == 127 for c in url):
        return False
    parts = urlsplit(url)
    return not parts.scheme and not parts.netloc


def safe_redirect_target(url: str | None) -> str:
    """Return the URL if it is safe to redirect to, else the root."""
    if is_safe_redirect(url):
        return url  # type: ignore[return-value]
    if url:
        logger.warning(f"Rejected unsafe redirect target: {url!r}")
    return ROOT


def capture_return_to(headers: Mapping[str, str], fallback: str = ROOT) -> str:
    """Derive where to send the user after login.

    Reads `next_url` from the query string of the `Referer` header. Falls
    back to `fallback` (itself checked), then to the root.
    """
    referer = headers.get("referer") or headers.get("Referer")
    if referer:
        values = parse_qs(urlsplit(referer).query).get(NEXT_URL_PARAM)
        if values:
            return safe_redirect_target(values[0])

    return safe_redirect_target(fallback)


def login_redirect_url(next_url: str) -> str:
    """Login page URL that returns to `next_url` afterwards."""
    return f"/login?{NEXT_URL_PARAM}={quote(next_url, safe='/')}"
