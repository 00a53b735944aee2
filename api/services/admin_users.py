"""Admin allowlist service functions."""

from typing import Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.face_verification import FaceVerifier
from core.storage import BlobStore
from core.utils.datetime import now, to_unix_millis
from database.models.admin_users import AdminUser

logger = logging.getLogger(__name__)


async def get_admin_by_email(db: AsyncSession, email: str) -> Optional[AdminUser]:
    """The allowlist entry for an email, or None."""
    result = await db.execute(select(AdminUser).where(AdminUser.email == email.lower()))
    return result.scalars().first()


def face_photo_key(user_id: str) -> str:
    return f"admin-faces/{user_id}-{to_unix_millis(now())}.jpg"


async def store_face_reference(
    db: AsyncSession,
    admin: AdminUser,
    user_id: str,
    image: bytes,
    content_type: Optional[str],
    blob_store: BlobStore,
    verifier: FaceVerifier,
) -> AdminUser:
    """
    Encode an admin's face photo, upload it and keep both on the allowlist row.

    The photo is uploaded only after encoding succeeds.
    """
    encoding = verifier.encode(image)

    key = await blob_store.upload(image, face_photo_key(user_id), content_type or "image/jpeg")
    admin.face_photo_url = blob_store.get_public_url(key)
    admin.face_encoding = encoding

    await db.commit()
    await db.refresh(admin)

    logger.info(f"Stored face reference for admin {admin.id}")
    return admin
