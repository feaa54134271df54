"""In-memory stand-ins for the account record store.

InMemoryUserRepository mirrors UserRepository's async signatures so the
services and API routes can run without PostgreSQL. The database session
argument is accepted and ignored.
"""

import uuid
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError

from account_service.repositories.user_repository import _UPDATABLE_FIELDS


@dataclass
class FakeUser:
    """Attribute-compatible with the User model."""

    username: str
    display_name: str
    email: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    password_hash: str | None = None
    email_verified: bool = False
    email_verification_token: str | None = None
    email_verification_expires: datetime | None = None
    reset_password_token: str | None = None
    reset_password_expires: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


def snapshot(user: FakeUser) -> dict:
    """Copy of every field, for before/after comparisons."""
    return {f.name: getattr(user, f.name) for f in fields(user)}


def _duplicate() -> IntegrityError:
    return IntegrityError(
        "INSERT INTO users", {}, Exception("duplicate key value")
    )


class InMemoryUserRepository:
    """Dict-backed account store with the UserRepository method set.

    Attributes:
        users: Stored accounts keyed by id.
        writes: Number of create/update/delete calls that changed state.
    """

    def __init__(self) -> None:
        self.users: dict[uuid.UUID, FakeUser] = {}
        self.writes = 0

    def add(self, user: FakeUser) -> FakeUser:
        """Seed an account directly (does not count as a write)."""
        self.users[user.id] = user
        return user

    def _taken(self, *, username: str, email: str, exclude: uuid.UUID | None) -> bool:
        return any(
            (u.username == username or u.email == email) and u.id != exclude
            for u in self.users.values()
        )

    async def get_by_id(self, _db, user_id: uuid.UUID) -> FakeUser | None:
        return self.users.get(user_id)

    async def get_by_id_with_secrets(self, _db, user_id: uuid.UUID) -> FakeUser | None:
        return self.users.get(user_id)

    async def get_by_email(
        self, _db, email: str, *, with_secrets: bool = False
    ) -> FakeUser | None:
        wanted = email.strip().lower()
        return next((u for u in self.users.values() if u.email == wanted), None)

    async def get_by_reset_token_hash(
        self, _db, token_hash: str, *, now: datetime
    ) -> FakeUser | None:
        return next(
            (
                u
                for u in self.users.values()
                if u.reset_password_token == token_hash
                and u.reset_password_expires is not None
                and u.reset_password_expires > now
            ),
            None,
        )

    async def get_by_verification_token_hash(
        self, _db, token_hash: str, *, now: datetime
    ) -> FakeUser | None:
        return next(
            (
                u
                for u in self.users.values()
                if u.email_verification_token == token_hash
                and u.email_verification_expires is not None
                and u.email_verification_expires > now
            ),
            None,
        )

    async def list_all(self, _db) -> list[FakeUser]:
        return sorted(self.users.values(), key=lambda u: (u.created_at, u.username))

    async def create(
        self,
        _db,
        *,
        username: str,
        display_name: str,
        email: str,
        password_hash: str | None = None,
        email_verification_token: str | None = None,
        email_verification_expires: datetime | None = None,
    ) -> FakeUser:
        username = username.strip().lower()
        email = email.strip().lower()
        if self._taken(username=username, email=email, exclude=None):
            raise _duplicate()
        user = FakeUser(
            username=username,
            display_name=display_name,
            email=email,
            password_hash=password_hash,
            email_verification_token=email_verification_token,
            email_verification_expires=email_verification_expires,
        )
        self.users[user.id] = user
        self.writes += 1
        return user

    async def update(self, _db, user_id: uuid.UUID, **kwargs) -> FakeUser | None:
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
        user = self.users.get(user_id)
        if user is None:
            return None
        for name in ("username", "email"):
            if isinstance(kwargs.get(name), str):
                kwargs[name] = kwargs[name].strip().lower()
        if self._taken(
            username=kwargs.get("username", user.username),
            email=kwargs.get("email", user.email),
            exclude=user_id,
        ):
            raise _duplicate()
        for name, value in kwargs.items():
            setattr(user, name, value)
        user.updated_at = datetime.now(UTC)
        self.writes += 1
        return user

    async def delete(self, _db, user_id: uuid.UUID) -> bool:
        removed = self.users.pop(user_id, None)
        if removed is None:
            return False
        self.writes += 1
        return True
