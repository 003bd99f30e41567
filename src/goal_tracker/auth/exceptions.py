"""Authentication error taxonomy.

Every error raised by the login flows carries a category and a public
message. The category decides how the HTTP boundary presents it; the public
message is the only text a client ever sees. The exception's own message is
for the server log.

- caller: bad input or an unknown provider, rendered inline on the login page
- security: CSRF, nonce or claims failures, shown as a generic login failure
- dependency: the identity provider could not be reached or refused us
- internal: hashing failures and other faults fatal to the request
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """How an authentication failure is presented to the client."""

    CALLER = "caller"
    SECURITY = "security"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"


class AuthError(Exception):
    """Base exception for authentication failures."""

    category: ErrorCategory = ErrorCategory.SECURITY
    status_code: int = 400
    public_message: str = "Login failed. Please try again."

    def __init__(self, message: str | None = None, provider: str | None = None):
        super().__init__(message or self.public_message)
        self.provider = provider


# Caller errors


class UnknownProviderError(AuthError):
    """Raised when a login provider name is not configured."""

    category = ErrorCategory.CALLER
    status_code = 404
    public_message = "Unknown login provider."

    def __init__(self, provider: str):
        super().__init__(f"No OIDC provider configured as {provider!r}", provider)


class LoginValidationError(AuthError):
    """Raised when submitted login fields are blank."""

    category = ErrorCategory.CALLER
    status_code = 400

    def __init__(self, messages: list[str]):
        super().__init__("; ".join(messages))
        self.messages = messages

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return " ".join(self.messages)


class InvalidCredentialsError(AuthError):
    """Raised for an unknown user, a disabled password or a wrong password.

    The three cases are indistinguishable to the client.
    """

    category = ErrorCategory.CALLER
    status_code = 401
    public_message = "Invalid username or password."


class AuthorizationDeniedError(AuthError):
    """Raised when the provider redirects back without an authorization code."""

    category = ErrorCategory.CALLER
    status_code = 400
    public_message = "Sign-in was cancelled or denied by the provider."


# Security violations


class InvalidAuthStateError(AuthError):
    """Raised when the auth-state cookie is missing, expired or unreadable."""


class CsrfMismatchError(AuthError):
    """Raised when the callback state does not match the issued CSRF token."""


class MissingIdTokenError(AuthError):
    """Raised when the token response carries no ID token."""


class ClaimsVerificationError(AuthError):
    """Raised when the ID token fails signature, issuer or audience checks."""


class NonceMismatchError(ClaimsVerificationError):
    """Raised when the ID token nonce differs from the one issued at login."""


class MissingEmailError(AuthError):
    """Raised when the verified claims carry no email address."""


# External dependency failures


class ExternalServiceError(AuthError):
    """Base for identity provider network failures."""

    category = ErrorCategory.DEPENDENCY
    status_code = 502
    public_message = "The login provider could not be reached. Please try again."

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        timed_out: bool = False,
    ):
        super().__init__(message, provider)
        self.timed_out = timed_out
        if timed_out:
            self.status_code = 504


class DiscoveryError(ExternalServiceError):
    """Raised when provider metadata or signing keys cannot be fetched."""


class TokenExchangeError(ExternalServiceError):
    """Raised when the token endpoint fails or rejects the authorization code."""


# Internal faults


class HashingError(AuthError):
    """Raised when password hashing fails or a stored hash is corrupt."""

    category = ErrorCategory.INTERNAL
    status_code = 500
    public_message = "Something went wrong."


class LoginRequired(Exception):
    """Raised by the auth gate when a protected route has no session."""

    def __init__(self, next_url: str):
        super().__init__(f"Login required for {next_url}")
        self.next_url = next_url
