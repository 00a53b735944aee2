"""ORM models. Importing this package registers every table on Base.metadata."""

from database.models.access_requests import AccessRequest, AccessRequestStatus
from database.models.admin_users import AdminUser
from database.models.applications import Application
from database.models.users import AuthSession, User

__all__ = [
    "AccessRequest",
    "AccessRequestStatus",
    "AdminUser",
    "Application",
    "AuthSession",
    "User",
]
