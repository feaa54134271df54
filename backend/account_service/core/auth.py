"""Session token issuance and verification.

Session tokens are HS256 JWTs carrying the public identity claim of an
account. They are self-contained: nothing is stored server-side, so a token
stays valid until its exp claim passes.

Pipeline:
- issue_session_token: sign a SessionClaim with an expiry
- verify_session_token: check signature, expiry, audience, issuer, and
  re-validate claim field types before trusting them
- AuthConfig: immutable auth settings consumed by the services
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt

from account_service.core.config import Settings
from account_service.core.errors import InvalidTokenError

_ALGORITHM = "HS256"


@dataclass(frozen=True)
class SessionClaim:
    """Identity fields embedded in a session token.

    Attributes:
        id: Account UUID.
        username: Lowercase username.
        display_name: Display name, if the token carried one.
        email: Lowercase email address.
    """

    id: uuid.UUID
    username: str
    display_name: str | None
    email: str


@dataclass(frozen=True)
class AuthConfig:
    """Authentication settings used by AuthService and UserService.

    Attributes:
        secret: HMAC signing secret for session tokens.
        issuer: iss claim value.
        audience: aud claim value.
        session_ttl: Lifetime of issued session tokens.
        reset_token_ttl: Lifetime of password reset tokens.
        verification_token_ttl: Lifetime of email verification tokens.
        bcrypt_rounds: bcrypt cost factor for new password hashes.
    """

    secret: str
    issuer: str
    audience: str
    session_ttl: timedelta
    reset_token_ttl: timedelta
    verification_token_ttl: timedelta
    bcrypt_rounds: int

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthConfig":
        """Build config from application settings (TTLs given in ms/seconds)."""
        return cls(
            secret=settings.auth_secret.get_secret_value(),
            issuer=settings.auth_issuer,
            audience=settings.auth_audience,
            session_ttl=timedelta(seconds=settings.session_token_ttl_seconds),
            reset_token_ttl=timedelta(
                milliseconds=settings.reset_password_token_ttl_ms
            ),
            verification_token_ttl=timedelta(
                milliseconds=settings.email_verification_token_ttl_ms
            ),
            bcrypt_rounds=settings.bcrypt_rounds,
        )


def issue_session_token(
    claim: SessionClaim,
    *,
    secret: str,
    ttl: timedelta,
    issuer: str,
    audience: str,
    now: datetime | None = None,
) -> str:
    """Create a signed session token for an account.

    Args:
        claim: Identity fields to embed.
        secret: HMAC signing secret.
        ttl: Time until expiration.
        issuer: iss claim value.
        audience: aud claim value.
        now: Issue time. Defaults to the current time.

    Returns:
        Encoded JWT string.
    """
    issued_at = now or datetime.now(UTC)
    payload = {
        "sub": str(claim.id),
        "username": claim.username,
        "display_name": claim.display_name,
        "email": claim.email,
        "aud": audience,
        "iss": issuer,
        "iat": issued_at,
        "exp": issued_at + ttl,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def verify_session_token(
    token: str,
    *,
    secret: str,
    issuer: str,
    audience: str,
) -> SessionClaim:
    """Verify a session token and rebuild its claim.

    A correctly signed token can still be missing fields (hand-crafted or
    issued by an older version), so every mandatory field is type-checked.

    Args:
        token: Encoded JWT.
        secret: HMAC signing secret.
        issuer: Expected iss claim.
        audience: Expected aud claim.

    Returns:
        SessionClaim reconstructed from the token.

    Raises:
        InvalidTokenError: Bad signature, malformed, expired, wrong
            audience/issuer, or missing/mistyped claims.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            audience=audience,
            issuer=issuer,
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError() from exc

    sub = payload.get("sub")
    username = payload.get("username")
    email = payload.get("email")
    if not isinstance(sub, str) or not isinstance(username, str):
        raise InvalidTokenError()
    if not isinstance(email, str):
        raise InvalidTokenError()

    try:
        account_id = uuid.UUID(sub)
    except ValueError as exc:
        raise InvalidTokenError() from exc

    display_name = payload.get("display_name")
    return SessionClaim(
        id=account_id,
        username=username,
        display_name=display_name if isinstance(display_name, str) else None,
        email=email,
    )
