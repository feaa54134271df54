"""Create users table.

Revision ID: 001_create_users
Revises:
Create Date: 2026-10-19

Account identity, password hash, and the two one-time token slots
(email verification, password reset). Token columns hold SHA-256 digests.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_create_users"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # pgcrypto provides gen_random_uuid() for UUID primary keys
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "users",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "email_verified",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("email_verification_token", sa.String(64), nullable=True),
        sa.Column(
            "email_verification_expires", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column("reset_password_token", sa.String(64), nullable=True),
        sa.Column(
            "reset_password_expires", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("username", name="users_username_key"),
        sa.UniqueConstraint("email", name="users_email_key"),
    )

    # Token lookups go by digest
    op.create_index(
        "ix_users_email_verification_token",
        "users",
        ["email_verification_token"],
    )
    op.create_index(
        "ix_users_reset_password_token",
        "users",
        ["reset_password_token"],
    )


def downgrade() -> None:
    op.drop_index("ix_users_reset_password_token", table_name="users")
    op.drop_index("ix_users_email_verification_token", table_name="users")
    op.drop_table("users")
