"""FastAPI dependencies for dependency injection."""

from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from api.services import admin_users as admin_service
from api.services import auth as auth_service
from core.config import settings
from core.exceptions import AuthenticationError
from core.face_verification import FaceVerifier
from core.geofence import Geofence
from core.realtime import ChangeFeed
from core.storage import BlobStore
from database.engine import get_db
from database.models.admin_users import AdminUser
from database.models.users import AuthSession, User


security = HTTPBearer(auto_error=False)

ADMIN_REQUIRED = "Unauthorized: Admin access required"


@dataclass
class CurrentIdentity:
    """The signed-in user and the session their token belongs to."""

    user: User
    session: AuthSession


@dataclass
class CurrentAdmin:
    """A signed-in user that is on the admin allowlist."""

    identity: CurrentIdentity
    admin: AdminUser


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> CurrentIdentity:
    """Require a valid bearer token with a live session."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user, session = await auth_service.resolve_token(
            db, credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
        )
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentIdentity(user=user, session=session)


async def require_admin_user(
    identity: CurrentIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> CurrentAdmin:
    """Require the signed-in user to be on the admin allowlist."""
    admin = await admin_service.get_admin_by_email(db, identity.user.email)
    if admin is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ADMIN_REQUIRED)
    return CurrentAdmin(identity=identity, admin=admin)


def get_change_feed(request: Request) -> ChangeFeed:
    return request.app.state.change_feed


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_face_verifier(request: Request) -> FaceVerifier:
    return request.app.state.face_verifier


def get_geofence(request: Request) -> Geofence:
    return request.app.state.geofence
