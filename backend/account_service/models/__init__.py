"""SQLAlchemy ORM models for the account service.

All models are exported from this module for convenient imports:
    from account_service.models import User
"""

from account_service.models.base import Base
from account_service.models.user import User

__all__ = [
    "Base",
    "User",
]
