"""User service — profile CRUD.

Provisioning, listing, updating, and deleting accounts. Changing an email
address resets the verified flag and sends a fresh verification link, so
email_verified always refers to the current address.
"""

import uuid
from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from account_service.core.auth import AuthConfig
from account_service.core.errors import ConflictError, NotFoundError
from account_service.core.tokens import issue_opaque_token
from account_service.notifiers.base import Notifier
from account_service.repositories.user_repository import UserRepository
from account_service.schemas.user import PublicUser
from account_service.services.auth_service import (
    USER_ALREADY_EXISTS_CODE,
    USER_ALREADY_EXISTS_MSG,
    deliver_link,
)

logger = structlog.get_logger()

_USER_RESOURCE = "User"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class UserService:
    """Profile operations on accounts.

    Args:
        db: Async database session.
        notifier: Delivers verification links after email changes.
        config: Token lifetimes.
        repository: Account record store. Defaults to UserRepository.
        clock: Returns the current time (timezone-aware).
    """

    def __init__(
        self,
        db: AsyncSession,
        notifier: Notifier,
        config: AuthConfig,
        *,
        repository: UserRepository | type[UserRepository] = UserRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._db = db
        self._notifier = notifier
        self._config = config
        self._users = repository
        self._clock = clock

    async def create_user(
        self,
        *,
        username: str,
        display_name: str,
        email: str,
    ) -> PublicUser:
        """Provision an account without a password.

        The owner cannot log in until they set a password through the
        reset flow.

        Raises:
            ConflictError: If the username or email is taken.
        """
        try:
            user = await self._users.create(
                self._db,
                username=username,
                display_name=display_name,
                email=email,
            )
        except IntegrityError as exc:
            await self._db.rollback()
            raise ConflictError(
                code=USER_ALREADY_EXISTS_CODE,
                message=USER_ALREADY_EXISTS_MSG,
            ) from exc

        await self._db.commit()
        logger.info("user_created", user_id=str(user.id))
        return PublicUser.model_validate(user)

    async def list_users(self) -> list[PublicUser]:
        users = await self._users.list_all(self._db)
        return [PublicUser.model_validate(user) for user in users]

    async def get_user(self, user_id: uuid.UUID) -> PublicUser:
        """Fetch one account.

        Raises:
            NotFoundError: If the account does not exist.
        """
        user = await self._users.get_by_id(self._db, user_id)
        if user is None:
            raise NotFoundError(_USER_RESOURCE, str(user_id))
        return PublicUser.model_validate(user)

    async def update_user(
        self,
        user_id: uuid.UUID,
        *,
        username: str | None = None,
        display_name: str | None = None,
        email: str | None = None,
    ) -> PublicUser:
        """Apply a partial profile update.

        Only non-None fields are written. A changed email marks the account
        unverified and rotates the verification token in the same update;
        the link is then sent best-effort.

        Raises:
            NotFoundError: If the account does not exist.
            ConflictError: If the new username or email is taken.
        """
        existing = await self._users.get_by_id(self._db, user_id)
        if existing is None:
            raise NotFoundError(_USER_RESOURCE, str(user_id))

        fields: dict[str, str | datetime | bool | None] = {}
        if username is not None:
            fields["username"] = username
        if display_name is not None:
            fields["display_name"] = display_name

        verification = None
        if email is not None and email.strip().lower() != existing.email:
            verification = issue_opaque_token(
                now=self._clock(), ttl=self._config.verification_token_ttl
            )
            fields["email"] = email
            fields["email_verified"] = False
            fields["email_verification_token"] = verification.digest
            fields["email_verification_expires"] = verification.expires

        if not fields:
            return PublicUser.model_validate(existing)

        try:
            updated = await self._users.update(self._db, user_id, **fields)
        except IntegrityError as exc:
            await self._db.rollback()
            raise ConflictError(
                code=USER_ALREADY_EXISTS_CODE,
                message=USER_ALREADY_EXISTS_MSG,
            ) from exc
        if updated is None:
            raise NotFoundError(_USER_RESOURCE, str(user_id))

        await self._db.commit()
        logger.info(
            "user_profile_updated",
            user_id=str(user_id),
            updated_fields=sorted(
                name for name in ("username", "display_name", "email") if name in fields
            ),
        )

        public_user = PublicUser.model_validate(updated)
        if verification is not None:
            await deliver_link(
                self._notifier.send_verification_email,
                public_user.email,
                verification.raw,
                user_id=user_id,
            )
        return public_user

    async def delete_user(self, user_id: uuid.UUID) -> None:
        """Delete an account.

        Raises:
            NotFoundError: If the account does not exist.
        """
        existing = await self._users.get_by_id(self._db, user_id)
        if existing is None:
            raise NotFoundError(_USER_RESOURCE, str(user_id))

        username = existing.username
        await self._users.delete(self._db, user_id)
        await self._db.commit()
        logger.warning("user_deleted", user_id=str(user_id), username=username)
