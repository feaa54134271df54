"""Rate limiting configuration using slowapi.

Security: Bounds how often credential endpoints can be called (login,
register, forgot-password, resend-verification) before the auth service
is reached. The service itself stays safe under repeated calls; repeated
forgot-password requests just rotate the token.

Requests carrying a valid bearer token are keyed per account. Everything
else falls back to IP-based keying.

Usage in routers:
    from account_service.core.rate_limiting import limiter

    @router.post("/forgot-password")
    @limiter.limit(settings.rate_limit_forgot_password)
    async def forgot_password(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from account_service.core.auth import verify_session_token
from account_service.core.config import settings
from account_service.core.errors import InvalidTokenError

_BEARER_PREFIX = "bearer "


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - Valid bearer token: "user:{account id}"
    - No/invalid token: "unauth:{ip}"

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    header = request.headers.get("Authorization", "")
    if header.lower().startswith(_BEARER_PREFIX):
        token = header[len(_BEARER_PREFIX) :].strip()
        try:
            claim = verify_session_token(
                token,
                secret=settings.auth_secret.get_secret_value(),
                issuer=settings.auth_issuer,
                audience=settings.auth_audience,
            )
            return f"user:{claim.id}"
        except InvalidTokenError:
            pass

    return f"unauth:{get_remote_address(request)}"


# Global limiter instance
# Configured with in-memory storage (suitable for single-instance deployment)
# For multi-instance, configure Redis storage via RATELIMIT_STORAGE_URL
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Security: Returns 429 Too Many Requests with standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Parse retry-after from exception detail (e.g., "3 per 15 minute")
    # Fallback to 60 seconds if parsing fails
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMITED",
                "message": f"Rate limit exceeded: {exc.detail}",
            }
        },
        headers={"Retry-After": retry_after},
    )
