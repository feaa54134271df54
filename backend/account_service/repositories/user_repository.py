"""Repository for User CRUD operations and credential lookups.

Provides database access for the users table. Token lookups only match
tokens whose expiry is still in the future, so an expired token behaves
exactly like an absent one.
"""

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer_group

from account_service.models.user import SECRETS_GROUP, User

# Fields that may be updated via UserRepository.update().
# Security: Never add 'id', 'created_at', or 'updated_at'.
# - id: primary key, immutable
# - created_at/updated_at: server-managed timestamps
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "username",
        "display_name",
        "email",
        "password_hash",
        "email_verified",
        "email_verification_token",
        "email_verification_expires",
        "reset_password_token",
        "reset_password_expires",
    }
)

# Normalized to lowercase on write
_LOWERCASE_FIELDS: frozenset[str] = frozenset({"username", "email"})


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static — no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key (public columns only).

        Args:
            db: Async database session.
            user_id: UUID primary key.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_id_with_secrets(
        db: AsyncSession, user_id: uuid.UUID
    ) -> User | None:
        """Fetch a user by primary key including credential columns.

        Args:
            db: Async database session.
            user_id: UUID primary key.

        Returns:
            User with password hash and token fields loaded, or None.
        """
        stmt = (
            select(User)
            .where(User.id == user_id)
            .options(undefer_group(SECRETS_GROUP))
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(
        db: AsyncSession,
        email: str,
        *,
        with_secrets: bool = False,
    ) -> User | None:
        """Fetch a user by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.
            with_secrets: Also load password hash and token fields.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.email == email.strip().lower())
        if with_secrets:
            stmt = stmt.options(undefer_group(SECRETS_GROUP))
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_reset_token_hash(
        db: AsyncSession,
        token_hash: str,
        *,
        now: datetime,
    ) -> User | None:
        """Fetch the user holding an unexpired reset token.

        Args:
            db: Async database session.
            token_hash: SHA-256 digest of the plain reset token.
            now: Current time; tokens expiring at or before it are ignored.

        Returns:
            User with secrets loaded, or None if no live token matches.
        """
        stmt = (
            select(User)
            .where(
                User.reset_password_token == token_hash,
                User.reset_password_expires > now,
            )
            .options(undefer_group(SECRETS_GROUP))
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_verification_token_hash(
        db: AsyncSession,
        token_hash: str,
        *,
        now: datetime,
    ) -> User | None:
        """Fetch the user holding an unexpired email verification token.

        Args:
            db: Async database session.
            token_hash: SHA-256 digest of the plain verification token.
            now: Current time; tokens expiring at or before it are ignored.

        Returns:
            User with secrets loaded, or None if no live token matches.
        """
        stmt = (
            select(User)
            .where(
                User.email_verification_token == token_hash,
                User.email_verification_expires > now,
            )
            .options(undefer_group(SECRETS_GROUP))
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_all(db: AsyncSession) -> Sequence[User]:
        """Fetch all users, oldest first.

        Args:
            db: Async database session.

        Returns:
            Users ordered by creation time.
        """
        stmt = select(User).order_by(User.created_at, User.username)
        result = await db.execute(stmt)
        return result.scalars().all()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        username: str,
        display_name: str,
        email: str,
        password_hash: str | None = None,
        email_verification_token: str | None = None,
        email_verification_expires: datetime | None = None,
    ) -> User:
        """Create a new user.

        Username and email are normalized to lowercase before storage.

        Args:
            db: Async database session.
            username: Unique username.
            display_name: Display name.
            email: Unique email address.
            password_hash: bcrypt hash (None for provisioned accounts).
            email_verification_token: Digest of the initial verification token.
            email_verification_expires: Expiry of the verification token.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If username or email already exists.
        """
        user = User(
            username=username.strip().lower(),
            display_name=display_name,
            email=email.strip().lower(),
            password_hash=password_hash,
            email_verified=False,
            email_verification_token=email_verification_token,
            email_verification_expires=email_verification_expires,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def update(
        db: AsyncSession,
        user_id: uuid.UUID,
        **kwargs: str | datetime | bool | None,
    ) -> User | None:
        """Update user fields.

        Only fields in _UPDATABLE_FIELDS are allowed. Unknown field names
        raise ValueError. All fields are written in a single flush.

        Args:
            db: Async database session.
            user_id: UUID of the user to update.
            **kwargs: Field names and values to update.

        Returns:
            Updated User if found, None if user does not exist.

        Raises:
            ValueError: If an unknown field name is passed.
            sqlalchemy.exc.IntegrityError: If a unique field collides.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        user = await db.get(User, user_id)
        if user is None:
            return None

        for field, value in kwargs.items():
            if field in _LOWERCASE_FIELDS and isinstance(value, str):
                value = value.strip().lower()
            setattr(user, field, value)

        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def delete(db: AsyncSession, user_id: uuid.UUID) -> bool:
        """Delete a user.

        Args:
            db: Async database session.
            user_id: UUID of the user to delete.

        Returns:
            True if a row was deleted, False if the user did not exist.
        """
        stmt = delete(User).where(User.id == user_id)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count > 0
