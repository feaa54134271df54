"""Public account projections.

Nothing in this module may expose the password hash or token fields.
"""

import uuid

from pydantic import BaseModel, ConfigDict


class PublicUser(BaseModel):
    """Public projection of an account.

    Built from the ORM model via ``PublicUser.model_validate(user)``.
    Only the declared fields are read, so deferred credential columns are
    never touched.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    display_name: str | None
    email: str


class CurrentUser(PublicUser):
    """Projection for the authenticated caller (/auth/me)."""

    email_verified: bool
