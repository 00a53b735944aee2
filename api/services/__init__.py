"""
API Services Layer.

Database operations for API endpoints. Each function takes the request's
AsyncSession; mutating functions also take the ChangeFeed they publish to.
"""

from api.services import access_requests, admin_users, applications, auth

__all__ = ["access_requests", "admin_users", "applications", "auth"]
