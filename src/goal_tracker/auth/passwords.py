"""Password hashing with bcrypt.

bcrypt salts every hash and encodes the cost factor in the hash itself
(`$2b$12$...`), so stored hashes stay verifiable when the configured cost
changes. Passwords are truncated to bcrypt's 72-byte limit on both the hash
and the verify side.

A user without a stored hash has password login disabled; see
`verify_user_password`.
"""

from __future__ import annotations

import logging

import bcrypt

from goal_tracker.auth.exceptions import HashingError
from goal_tracker.auth.identity import LocalUser

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 12
BCRYPT_MAX_BYTES = 72

# Stands in for a missing hash; no password matches it
_DUMMY_HASH = bcrypt.hashpw(b"no such account", bcrypt.gensalt(DEFAULT_ROUNDS))


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password with a fresh salt.

    Raises:
        HashingError: If salt generation or hashing fails
    """
    try:
        salt = bcrypt.gensalt(rounds=rounds)
        return bcrypt.hashpw(_encode(password), salt).decode("utf-8")
    except (ValueError, TypeError) as e:
        raise HashingError(f"Password hashing failed: {e}") from e


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash.

    Returns False on mismatch. The comparison is bcrypt's own constant-time
    check.

    Raises:
        HashingError: If the stored hash is structurally corrupt
    """
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError) as e:
        raise HashingError(f"Stored password hash is invalid: {e}") from e


def reject_without_hash(password: str) -> bool:
    """Spend one bcrypt comparison on a login that cannot succeed.

    Always returns False.
    """
    bcrypt.checkpw(_encode(password), _DUMMY_HASH)
    return False


def verify_user_password(user: LocalUser, password: str) -> bool:
    """Check a password for a user, honouring disabled password login."""
    if not user.hashed_password:
        return False
    return verify_password(password, user.hashed_password)
