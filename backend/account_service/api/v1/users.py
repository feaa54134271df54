"""User profile endpoints.

REQ: Accounts can be listed, read, provisioned, updated and deleted.

Endpoints:
- GET /users — list accounts
- POST /users — provision an account without a password (verified callers)
- PATCH /users/password — change the caller's own password
- GET /users/{user_id} — get one account
- PUT /users/{user_id} — update the caller's own profile
- DELETE /users/{user_id} — delete the caller's own account (verified)

Callers may only modify their own account; reading is open to any
authenticated caller.
"""

import uuid

from fastapi import APIRouter
from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from account_service.api.deps import (
    AuthServiceDep,
    CurrentUser,
    UserServiceDep,
    VerifiedUser,
)
from account_service.core.errors import ForbiddenError
from account_service.core.passwords import validate_password_strength
from account_service.core.responses import DataResponse
from account_service.schemas.user import PublicUser

router = APIRouter()


# ===================================================================
# Request models
# ===================================================================


class CreateUserRequest(BaseModel):
    """Request body for POST /users."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    username: str = Field(min_length=3, max_length=30)
    display_name: str = Field(min_length=3, max_length=100)
    email: EmailStr

    @field_validator("username", "email")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.lower()


class UpdateUserRequest(BaseModel):
    """Request body for PUT /users/{user_id}. Omitted fields are unchanged."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    username: str | None = Field(default=None, min_length=3, max_length=30)
    display_name: str | None = Field(default=None, min_length=3, max_length=100)
    email: EmailStr | None = None

    @field_validator("username", "email")
    @classmethod
    def _lowercase(cls, value: str | None) -> str | None:
        return value.lower() if value is not None else None


class UpdatePasswordRequest(BaseModel):
    """Request body for PATCH /users/password."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=1, max_length=128)
    confirm_password: str = Field(min_length=1, max_length=128)

    @model_validator(mode="after")
    def _passwords_match(self) -> "UpdatePasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


def _require_self(user: CurrentUser, user_id: uuid.UUID) -> None:
    if user.id != user_id:
        raise ForbiddenError("You can only modify your own account")


# ===================================================================
# Collection
# ===================================================================


@router.get("")
async def list_users(
    _user: CurrentUser,
    user_service: UserServiceDep,
) -> DataResponse[list[PublicUser]]:
    """List all accounts (public fields only)."""
    users = await user_service.list_users()
    return DataResponse(data=users)


@router.post("", status_code=201)
async def create_user(
    _user: VerifiedUser,
    body: CreateUserRequest,
    user_service: UserServiceDep,
) -> DataResponse[PublicUser]:
    """Provision an account without a password.

    The new owner sets a password through the forgot-password flow.
    """
    created = await user_service.create_user(
        username=body.username,
        display_name=body.display_name,
        email=body.email,
    )
    return DataResponse(data=created)


# Declared before /{user_id} so "password" is never parsed as an id.
@router.patch("/password")
async def update_password(
    user: CurrentUser,
    body: UpdatePasswordRequest,
    auth_service: AuthServiceDep,
) -> DataResponse[dict]:
    """Change the caller's password (requires the current one)."""
    validate_password_strength(body.new_password, field_name="New password")

    await auth_service.update_password(
        user.id,
        current_password=body.current_password,
        new_password=body.new_password,
    )
    return DataResponse(data={"message": "Password updated successfully"})


# ===================================================================
# Single account
# ===================================================================


@router.get("/{user_id}")
async def get_user(
    user_id: uuid.UUID,
    _user: CurrentUser,
    user_service: UserServiceDep,
) -> DataResponse[PublicUser]:
    """Get one account by id."""
    found = await user_service.get_user(user_id)
    return DataResponse(data=found)


@router.put("/{user_id}")
async def update_user(
    user_id: uuid.UUID,
    body: UpdateUserRequest,
    user: CurrentUser,
    user_service: UserServiceDep,
) -> DataResponse[PublicUser]:
    """Update the caller's profile.

    Changing the email marks the account unverified and sends a new
    verification link.
    """
    _require_self(user, user_id)

    updated = await user_service.update_user(
        user_id,
        username=body.username,
        display_name=body.display_name,
        email=body.email,
    )
    return DataResponse(data=updated)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: uuid.UUID,
    user: VerifiedUser,
    user_service: UserServiceDep,
) -> None:
    """Delete the caller's account."""
    _require_self(user, user_id)

    await user_service.delete_user(user_id)
