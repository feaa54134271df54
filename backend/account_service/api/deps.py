"""Shared dependencies for API endpoints.

Authentication and service dependencies. Session tokens arrive as
``Authorization: Bearer <jwt>`` headers.

WHY DEPENDENCY INJECTION:
- Consistent auth across all endpoints
- Services are built per request around the request's DB session
- Testable with dependency overrides
"""

from typing import Annotated

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from account_service.core.auth import AuthConfig, SessionClaim, verify_session_token
from account_service.core.config import settings
from account_service.core.database import get_db
from account_service.core.errors import EmailNotVerifiedError, UnauthorizedError
from account_service.models import User
from account_service.notifiers import Notifier, get_notifier
from account_service.repositories.user_repository import UserRepository
from account_service.services.auth_service import AuthService
from account_service.services.user_service import UserService

logger = structlog.get_logger()

bearer = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_auth_config() -> AuthConfig:
    """Auth settings for the current process."""
    return AuthConfig.from_settings(settings)


def get_notifier_dependency() -> Notifier:
    """Notifier singleton (overridden in tests)."""
    return get_notifier()


def get_user_repository() -> type[UserRepository]:
    """Account record store (overridden in tests)."""
    return UserRepository


AuthConfigDep = Annotated[AuthConfig, Depends(get_auth_config)]
NotifierDep = Annotated[Notifier, Depends(get_notifier_dependency)]
UserRepositoryDep = Annotated[type[UserRepository], Depends(get_user_repository)]


def _claim_from_credentials(
    creds: HTTPAuthorizationCredentials | None,
    config: AuthConfig,
) -> SessionClaim | None:
    if creds is None or (creds.scheme or "").lower() != "bearer":
        return None
    return verify_session_token(
        creds.credentials,
        secret=config.secret,
        issuer=config.issuer,
        audience=config.audience,
    )


async def get_current_claim(
    creds: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer)],
    config: AuthConfigDep,
) -> SessionClaim:
    """Get the verified session claim of the caller.

    Raises:
        UnauthorizedError: No bearer token.
        InvalidTokenError: Token rejected (signature, expiry, claims).
    """
    claim = _claim_from_credentials(creds, config)
    if claim is None:
        raise UnauthorizedError("Access token not found")
    return claim


async def get_optional_claim(
    creds: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer)],
    config: AuthConfigDep,
) -> SessionClaim | None:
    """Like get_current_claim, but anonymous callers get None.

    A token that is present but invalid still raises InvalidTokenError.
    """
    return _claim_from_credentials(creds, config)


CurrentClaim = Annotated[SessionClaim, Depends(get_current_claim)]
OptionalClaim = Annotated[SessionClaim | None, Depends(get_optional_claim)]


async def get_current_user(
    claim: CurrentClaim,
    db: DbSession,
    users: UserRepositoryDep,
) -> User:
    """Get the User row for the caller.

    Raises:
        UnauthorizedError: Account no longer exists (deleted after the
            token was issued).
    """
    user = await users.get_by_id(db, claim.id)
    if user is None:
        raise UnauthorizedError()
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def require_verified_email(request: Request, user: CurrentUser) -> User:
    """Require the caller's email to be verified.

    Raises:
        EmailNotVerifiedError: Email not verified (403).
    """
    if not user.email_verified:
        logger.warning(
            "unverified_email_access_attempt",
            user_id=str(user.id),
            path=request.url.path,
            method=request.method,
        )
        raise EmailNotVerifiedError()
    return user


VerifiedUser = Annotated[User, Depends(require_verified_email)]


def get_auth_service(
    db: DbSession,
    notifier: NotifierDep,
    config: AuthConfigDep,
    users: UserRepositoryDep,
) -> AuthService:
    return AuthService(db, notifier, config, repository=users)


def get_user_service(
    db: DbSession,
    notifier: NotifierDep,
    config: AuthConfigDep,
    users: UserRepositoryDep,
) -> UserService:
    return UserService(db, notifier, config, repository=users)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
