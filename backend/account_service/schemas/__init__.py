"""Pydantic schemas shared across API and services."""

from account_service.schemas.user import CurrentUser, PublicUser

__all__ = [
    "CurrentUser",
    "PublicUser",
]
