"""Admin allowlist endpoints."""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    CurrentAdmin,
    CurrentIdentity,
    get_blob_store,
    get_current_identity,
    get_face_verifier,
    require_admin_user,
)
from api.schemas.auth import AdminUserResponse
from api.services import admin_users as service
from core.exceptions import FaceVerificationUnavailable
from core.face_verification import FaceVerifier
from core.storage import BlobStore
from database.engine import get_db
from database.models.admin_users import AdminUser

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(admin: AdminUser) -> AdminUserResponse:
    return AdminUserResponse(
        id=admin.id,
        email=admin.email,
        face_photo_url=admin.face_photo_url,
        has_face_reference=bool(admin.face_encoding),
        created_at=admin.created_at,
    )


@router.get(
    "/me",
    response_model=AdminUserResponse,
    summary="My allowlist entry",
    description="404 when the signed-in user is not an admin",
)
async def get_my_admin_entry(
    identity: CurrentIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> AdminUserResponse:
    admin = await service.get_admin_by_email(db, identity.user.email)
    if admin is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not an admin")
    return _to_response(admin)


@router.post(
    "/me/face-photo",
    response_model=AdminUserResponse,
    summary="Upload my reference face photo",
)
async def upload_face_photo(
    photo: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    verifier: FaceVerifier = Depends(get_face_verifier),
    current: CurrentAdmin = Depends(require_admin_user),
) -> AdminUserResponse:
    image = await photo.read()
    if not image:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty photo")

    try:
        admin = await service.store_face_reference(
            db,
            current.admin,
            current.identity.user.id,
            image,
            photo.content_type,
            blob_store,
            verifier,
        )
    except FaceVerificationUnavailable:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Face verification is not configured",
        )
    return _to_response(admin)
