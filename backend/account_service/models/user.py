"""User model - account identity and credentials.

Secret columns (password hash and one-time token digests) are deferred into
the "secrets" load group. Plain lookups never load them; repository methods
that need them undefer the group explicitly.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from account_service.models.base import Base, TimestampMixin

_DEFAULT_UUID = text("gen_random_uuid()")

# Load group for credential columns
SECRETS_GROUP = "secrets"


class User(Base, TimestampMixin):
    """User account.

    Attributes:
        id: UUID primary key.
        username: Unique lowercase username.
        display_name: Name shown to other users.
        email: Unique lowercase email address.
        password_hash: bcrypt hash. NULL when no password has been set.
        email_verified: Whether the email address has been confirmed.
        email_verification_token: SHA-256 digest of the outstanding
            verification token.
        email_verification_expires: Expiry of the verification token.
        reset_password_token: SHA-256 digest of the outstanding reset token.
        reset_password_expires: Expiry of the reset token.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=_DEFAULT_UUID,
    )
    username: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
    )
    display_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )

    # Credentials (deferred)
    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        deferred=True,
        deferred_group=SECRETS_GROUP,
    )
    email_verification_token: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
        deferred=True,
        deferred_group=SECRETS_GROUP,
    )
    email_verification_expires: Mapped[datetime | None] = mapped_column(
        nullable=True,
        deferred=True,
        deferred_group=SECRETS_GROUP,
    )
    reset_password_token: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
        deferred=True,
        deferred_group=SECRETS_GROUP,
    )
    reset_password_expires: Mapped[datetime | None] = mapped_column(
        nullable=True,
        deferred=True,
        deferred_group=SECRETS_GROUP,
    )
