"""Opaque one-time tokens for password reset and email verification.

Tokens are 256-bit random values encoded as lowercase hex. Only their
SHA-256 digest is stored; the plain token goes out in the email link.

WHY SHA-256 AND NOT BCRYPT:
- Tokens are high-entropy random values, not guessable secrets
- A deterministic digest can be looked up with an indexed equality query
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

# 32 bytes = 256 bits of entropy = 64 hex characters
TOKEN_BYTES = 32


@dataclass(frozen=True)
class IssuedToken:
    """A freshly generated token with its storage digest and expiry.

    Attributes:
        raw: Plain token for the email link. Never persisted or logged.
        digest: SHA-256 hex digest stored on the account.
        expires: Instant after which the token is no longer accepted.
    """

    raw: str
    digest: str
    expires: datetime


def generate_opaque_token() -> str:
    """Generate a cryptographically secure random token.

    Returns:
        64-character lowercase hex string.
    """
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Return the SHA-256 hex digest of a token.

    Deterministic: the same token always yields the same digest.
    """
    return hashlib.sha256(token.encode()).hexdigest()


def issue_opaque_token(*, now: datetime, ttl: timedelta) -> IssuedToken:
    """Generate a token, its digest, and its expiry.

    Args:
        now: Current time (timezone-aware).
        ttl: Time until the token expires.

    Returns:
        IssuedToken bundle.
    """
    raw = generate_opaque_token()
    return IssuedToken(raw=raw, digest=hash_token(raw), expires=now + ttl)
