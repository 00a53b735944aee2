"""
Access request service functions for API endpoints.

Creation (with the server-side geofence check), lookups and the single admin
decision that moves a request out of pending. Change events are published
after each successful commit.
"""

from typing import Optional
import logging

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.access_requests import AccessRequestCreate, AccessRequestResponse
from core.exceptions import (
    AccessDeniedError,
    InvalidTransitionError,
    MissingFaceReferenceError,
    RecordNotFoundError,
)
from core.face_verification import FaceVerifier, is_match
from core.geofence import Coordinates, Geofence
from core.realtime import ChangeEvent, ChangeFeed, ChangeType
from core.security import mask_pii
from core.utils.datetime import now
from database.models.access_requests import AccessRequest, AccessRequestStatus
from database.models.admin_users import AdminUser

logger = logging.getLogger(__name__)

TABLE = "access_requests"


def serialize(access_request: AccessRequest) -> dict:
    """JSON-ready snapshot used in change events."""
    return AccessRequestResponse.model_validate(access_request).model_dump(mode="json")


async def create_access_request(
    db: AsyncSession,
    feed: ChangeFeed,
    geofence: Geofence,
    data: AccessRequestCreate,
) -> AccessRequest:
    """
    Insert a pending access request.

    Raises:
        AccessDeniedError: If the reported location is outside the geofence
    """
    verdict = geofence.evaluate(Coordinates(data.location_lat, data.location_lng))
    if not verdict.within_range:
        logger.info(f"Rejected access request outside geofence ({verdict.distance_km:.3f} km)")
        raise AccessDeniedError(verdict.distance_km)

    access_request = AccessRequest(
        name=data.name,
        location_lat=data.location_lat,
        location_lng=data.location_lng,
        device_id=data.device_id,
        status=AccessRequestStatus.PENDING.value,
        photo_url=None,
        photo_expires_at=None,
    )
    db.add(access_request)
    await db.commit()
    await db.refresh(access_request)

    snapshot = serialize(access_request)
    logger.info(f"New access request {access_request.id}: {mask_pii({'name': data.name})}")
    feed.publish(ChangeEvent(table=TABLE, type=ChangeType.INSERT, new=snapshot))
    return access_request


async def get_access_request(db: AsyncSession, request_id: str) -> AccessRequest:
    """
    Get an access request by id.

    Raises:
        RecordNotFoundError: If no such request exists
    """
    result = await db.execute(select(AccessRequest).where(AccessRequest.id == request_id))
    access_request = result.scalars().first()
    if access_request is None:
        raise RecordNotFoundError("Access request", request_id)
    return access_request


async def get_latest_for_device(db: AsyncSession, device_id: str) -> Optional[AccessRequest]:
    """Most recent request made from a device, or None."""
    stmt = (
        select(AccessRequest)
        .where(AccessRequest.device_id == device_id)
        .order_by(desc(AccessRequest.created_at))
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def list_access_requests(
    db: AsyncSession,
    status: Optional[str] = None,
) -> list[AccessRequest]:
    """All requests, newest first, optionally filtered by status."""
    query = select(AccessRequest).order_by(desc(AccessRequest.created_at))
    if status:
        query = query.where(AccessRequest.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())


async def decide_access_request(
    db: AsyncSession,
    feed: ChangeFeed,
    request_id: str,
    decision: str,
) -> AccessRequest:
    """
    Approve or reject a pending request.

    approved_at is set only when approving.

    Raises:
        RecordNotFoundError: If no such request exists
        InvalidTransitionError: If the request is no longer pending
    """
    target = AccessRequestStatus(decision)
    if target == AccessRequestStatus.PENDING:
        raise InvalidTransitionError(
            "A request can only be approved or rejected", target=target.value
        )

    access_request = await get_access_request(db, request_id)
    if access_request.status != AccessRequestStatus.PENDING.value:
        raise InvalidTransitionError(
            f"Access request is already {access_request.status}",
            current=access_request.status,
            target=target.value,
        )

    old = serialize(access_request)
    access_request.status = target.value
    access_request.approved_at = now() if target == AccessRequestStatus.APPROVED else None

    await db.commit()
    await db.refresh(access_request)

    logger.info(f"Access request {request_id} {target.value}")
    feed.publish(
        ChangeEvent(table=TABLE, type=ChangeType.UPDATE, new=serialize(access_request), old=old)
    )
    return access_request


async def face_approve_access_request(
    db: AsyncSession,
    feed: ChangeFeed,
    verifier: FaceVerifier,
    admin: AdminUser,
    request_id: str,
    probe_image: bytes,
    threshold: float,
) -> tuple[AccessRequest, bool, float]:
    """
    Approve a pending request if the probe photo matches the admin's reference face.

    Returns:
        (access_request, approved, confidence)

    Raises:
        MissingFaceReferenceError: If the admin has no stored reference face
        FaceVerificationUnavailable: If no verifier is configured
    """
    if not admin.face_encoding:
        raise MissingFaceReferenceError()

    access_request = await get_access_request(db, request_id)
    if access_request.status != AccessRequestStatus.PENDING.value:
        raise InvalidTransitionError(
            f"Access request is already {access_request.status}",
            current=access_request.status,
            target=AccessRequestStatus.APPROVED.value,
        )

    confidence = verifier.verify(probe_image, admin.face_encoding)
    if not is_match(confidence, threshold):
        logger.info(f"Face verification below threshold for request {request_id}")
        return access_request, False, confidence

    access_request = await decide_access_request(
        db, feed, request_id, AccessRequestStatus.APPROVED.value
    )
    return access_request, True, confidence
