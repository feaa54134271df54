"""Auth service — registration, login, and credential lifecycle.

Orchestrates the account state machine:

    Unregistered → Registered-Unverified → Registered-Verified

with two independent token states per account (no active reset token ⇄
active reset token, and the same for verification). Tokens are opaque
random values; only their SHA-256 digest is stored, and a new token always
overwrites the previous one.

Security considerations:
- forgot_password / resend_verification: identical responses whether or
  not the account exists (enumeration defense)
- login: bcrypt work is spent on every path, including missing accounts
- reset/verify: one error message for unknown, used, and expired tokens
- failure paths perform no writes; notifier failures never roll back
  committed account state
"""

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from account_service.core.auth import AuthConfig, SessionClaim, issue_session_token
from account_service.core.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)
from account_service.core.passwords import PasswordHasher
from account_service.core.tokens import hash_token, issue_opaque_token
from account_service.notifiers.base import NotificationError, Notifier
from account_service.repositories.user_repository import UserRepository
from account_service.schemas.user import PublicUser

logger = structlog.get_logger()

RESET_LINK_SENT_MESSAGE = "If email exists, reset link has been sent"
VERIFICATION_LINK_SENT_MESSAGE = "If email exists, verification link has been sent"

INVALID_RESET_TOKEN_MSG = "Invalid or expired reset token"  # nosec B105
INVALID_VERIFICATION_TOKEN_MSG = "Invalid or expired verification token"  # nosec B105

SAME_PASSWORD_MSG = "New password must be different from current password"  # nosec B105

USER_ALREADY_EXISTS_CODE = "USER_ALREADY_EXISTS"
USER_ALREADY_EXISTS_MSG = "A user with this username or email already exists"


def _utcnow() -> datetime:
    return datetime.now(UTC)


async def deliver_link(
    send: Callable[[str, str], Awaitable[None]],
    email: str,
    token: str,
    *,
    user_id: uuid.UUID,
) -> bool:
    """Send a reset or verification link, reporting failure instead of raising.

    Account state is already committed when this runs, so a delivery
    failure is logged and left to the caller to report.

    Returns:
        True if the notifier accepted the message.
    """
    try:
        await send(email, token)
    except NotificationError:
        logger.warning(
            "notification_failed",
            user_id=str(user_id),
            method=getattr(send, "__name__", "send"),
        )
        return False
    return True


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of a registration.

    Attributes:
        user: Public projection of the new account.
        verification_email_sent: False when the notifier failed. The
            account exists either way.
    """

    user: PublicUser
    verification_email_sent: bool


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful login.

    Attributes:
        user: Public projection of the account.
        token: Signed session token.
        expires_in: Token lifetime in seconds.
    """

    user: PublicUser
    token: str
    expires_in: int


class AuthService:
    """Authentication and credential lifecycle operations.

    Holds no state across requests: every instance wraps one database
    session, and all account state lives in the store.

    Args:
        db: Async database session. The service commits after each
            successful mutation.
        notifier: Delivers reset and verification links.
        config: Token lifetimes, signing secret, and bcrypt cost.
        repository: Account record store. Defaults to UserRepository.
        hasher: Password hasher. Defaults to bcrypt at config cost.
        clock: Returns the current time (timezone-aware).
    """

    def __init__(
        self,
        db: AsyncSession,
        notifier: Notifier,
        config: AuthConfig,
        *,
        repository: UserRepository | type[UserRepository] = UserRepository,
        hasher: PasswordHasher | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._db = db
        self._notifier = notifier
        self._config = config
        self._users = repository
        self._hasher = hasher or PasswordHasher(config.bcrypt_rounds)
        self._clock = clock

    # =========================================================================
    # Registration and sessions
    # =========================================================================

    async def register(
        self,
        *,
        username: str,
        display_name: str,
        email: str,
        password: str,
    ) -> RegistrationResult:
        """Create an unverified account and send its verification link.

        Input is assumed validated and normalized by the caller.

        Returns:
            RegistrationResult with the public account.

        Raises:
            ConflictError: If the username or email is taken.
        """
        password_hash = self._hasher.hash(password)
        verification = issue_opaque_token(
            now=self._clock(), ttl=self._config.verification_token_ttl
        )

        try:
            user = await self._users.create(
                self._db,
                username=username,
                display_name=display_name,
                email=email,
                password_hash=password_hash,
                email_verification_token=verification.digest,
                email_verification_expires=verification.expires,
            )
        except IntegrityError as exc:
            await self._db.rollback()
            logger.info("registration_conflict")
            raise ConflictError(
                code=USER_ALREADY_EXISTS_CODE,
                message=USER_ALREADY_EXISTS_MSG,
            ) from exc

        await self._db.commit()
        public_user = PublicUser.model_validate(user)
        logger.info("user_registered", user_id=str(public_user.id))

        sent = await deliver_link(
            self._notifier.send_verification_email,
            public_user.email,
            verification.raw,
            user_id=public_user.id,
        )
        return RegistrationResult(user=public_user, verification_email_sent=sent)

    async def login(self, *, email: str, password: str) -> LoginResult:
        """Check credentials and issue a session token.

        An unverified email does not block login.

        Raises:
            UnauthorizedError: Unknown email, no password set, or wrong
                password.
            CorruptCredentialError: If the stored hash is unreadable.
        """
        user = await self._users.get_by_email(self._db, email, with_secrets=True)

        if user is None:
            # Security: spend bcrypt time on every path
            self._hasher.verify_dummy(password)
            logger.info("login_failed", reason="user_not_found")
            raise UnauthorizedError("User not found")

        if user.password_hash is None:
            self._hasher.verify_dummy(password)
            logger.info("login_failed", reason="password_not_set", user_id=str(user.id))
            raise UnauthorizedError("Password not set")

        if not self._hasher.verify(password, user.password_hash):
            logger.info(
                "login_failed", reason="invalid_credentials", user_id=str(user.id)
            )
            raise UnauthorizedError("Invalid credentials")

        public_user = PublicUser.model_validate(user)
        token = issue_session_token(
            SessionClaim(
                id=public_user.id,
                username=public_user.username,
                display_name=public_user.display_name,
                email=public_user.email,
            ),
            secret=self._config.secret,
            ttl=self._config.session_ttl,
            issuer=self._config.issuer,
            audience=self._config.audience,
        )
        logger.info("user_logged_in", user_id=str(public_user.id))
        return LoginResult(
            user=public_user,
            token=token,
            expires_in=int(self._config.session_ttl.total_seconds()),
        )

    async def logout(self, claim: SessionClaim | None) -> None:
        """Record a logout.

        Session tokens are stateless, so nothing is invalidated. A token
        stays valid until it expires.
        """
        logger.info(
            "user_logged_out",
            user_id=str(claim.id) if claim is not None else None,
        )

    # =========================================================================
    # Password reset
    # =========================================================================

    async def forgot_password(self, email: str) -> str:
        """Issue a reset token and email it, if the account exists.

        Returns:
            The same generic message whether or not the email is known.
        """
        user = await self._users.get_by_email(self._db, email)
        if user is None:
            logger.info("password_reset_requested", found=False)
            return RESET_LINK_SENT_MESSAGE

        reset = issue_opaque_token(now=self._clock(), ttl=self._config.reset_token_ttl)
        await self._users.update(
            self._db,
            user.id,
            reset_password_token=reset.digest,
            reset_password_expires=reset.expires,
        )
        await self._db.commit()
        logger.info("password_reset_requested", found=True, user_id=str(user.id))

        await deliver_link(
            self._notifier.send_reset_password_email,
            user.email,
            reset.raw,
            user_id=user.id,
        )
        return RESET_LINK_SENT_MESSAGE

    async def reset_password(self, *, token: str, new_password: str) -> None:
        """Consume a reset token and replace the password.

        The new hash and the cleared token fields are written in one update,
        so a successful reset never leaves a usable token behind.

        Raises:
            BadRequestError: Unknown, already used, or expired token.
        """
        user = await self._users.get_by_reset_token_hash(
            self._db, hash_token(token), now=self._clock()
        )
        if user is None:
            logger.info("password_reset_failed", reason="invalid_or_expired_token")
            raise BadRequestError(INVALID_RESET_TOKEN_MSG)

        await self._users.update(
            self._db,
            user.id,
            password_hash=self._hasher.hash(new_password),
            reset_password_token=None,
            reset_password_expires=None,
        )
        await self._db.commit()
        logger.info("password_reset_completed", user_id=str(user.id))

    # =========================================================================
    # Email verification
    # =========================================================================

    async def verify_email(self, token: str) -> PublicUser:
        """Consume a verification token and mark the email verified.

        Returns:
            Public projection of the verified account.

        Raises:
            BadRequestError: Unknown, already used, or expired token.
        """
        user = await self._users.get_by_verification_token_hash(
            self._db, hash_token(token), now=self._clock()
        )
        if user is None:
            logger.info("email_verification_failed", reason="invalid_or_expired_token")
            raise BadRequestError(INVALID_VERIFICATION_TOKEN_MSG)

        updated = await self._users.update(
            self._db,
            user.id,
            email_verified=True,
            email_verification_token=None,
            email_verification_expires=None,
        )
        await self._db.commit()
        logger.info("email_verified", user_id=str(user.id))
        return PublicUser.model_validate(updated or user)

    async def resend_verification(self, email: str) -> str:
        """Rotate the verification token and email it.

        Unknown and already-verified accounts get the same generic message
        with no writes, so the response does not reveal either state.

        Returns:
            Generic confirmation message.
        """
        user = await self._users.get_by_email(self._db, email)
        if user is None:
            logger.info("verification_resend_requested", outcome="not_found")
            return VERIFICATION_LINK_SENT_MESSAGE
        if user.email_verified:
            logger.info(
                "verification_resend_requested",
                outcome="already_verified",
                user_id=str(user.id),
            )
            return VERIFICATION_LINK_SENT_MESSAGE

        verification = issue_opaque_token(
            now=self._clock(), ttl=self._config.verification_token_ttl
        )
        await self._users.update(
            self._db,
            user.id,
            email_verification_token=verification.digest,
            email_verification_expires=verification.expires,
        )
        await self._db.commit()
        logger.info(
            "verification_resend_requested", outcome="sent", user_id=str(user.id)
        )

        await deliver_link(
            self._notifier.send_verification_email,
            user.email,
            verification.raw,
            user_id=user.id,
        )
        return VERIFICATION_LINK_SENT_MESSAGE

    # =========================================================================
    # Password change (authenticated)
    # =========================================================================

    async def update_password(
        self,
        user_id: uuid.UUID,
        *,
        current_password: str,
        new_password: str,
    ) -> None:
        """Change the password of an authenticated account.

        Raises:
            NotFoundError: Account does not exist.
            BadRequestError: No password set, or the new password equals
                the current one.
            ForbiddenError: Current password is wrong.
        """
        user = await self._users.get_by_id_with_secrets(self._db, user_id)
        if user is None:
            raise NotFoundError("User", str(user_id))

        if user.password_hash is None:
            raise BadRequestError("Password not set for this user")

        if not self._hasher.verify(current_password, user.password_hash):
            logger.warning(
                "password_update_failed",
                user_id=str(user_id),
                reason="invalid_current_password",
            )
            raise ForbiddenError("Invalid credentials")

        if self._hasher.verify(new_password, user.password_hash):
            logger.warning(
                "password_update_failed",
                user_id=str(user_id),
                reason="same_as_current",
            )
            raise BadRequestError(SAME_PASSWORD_MSG)

        await self._users.update(
            self._db, user_id, password_hash=self._hasher.hash(new_password)
        )
        await self._db.commit()
        logger.info("password_updated", user_id=str(user_id))
