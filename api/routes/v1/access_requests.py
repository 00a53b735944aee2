"""Access request endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    CurrentAdmin,
    get_change_feed,
    get_face_verifier,
    get_geofence,
    require_admin_user,
)
from api.schemas.access_requests import (
    AccessRequestCreate,
    AccessRequestDecision,
    AccessRequestResponse,
    AccessRequestStatusType,
    FaceApprovalResponse,
)
from api.services import access_requests as service
from core.config import settings
from core.exceptions import (
    AccessDeniedError,
    FaceVerificationUnavailable,
    FaceVerifierError,
    InvalidTransitionError,
    MissingFaceReferenceError,
    RecordNotFoundError,
)
from core.face_verification import FaceVerifier
from core.geofence import Geofence
from core.realtime import ChangeFeed
from database.engine import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=AccessRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit an access request",
    description="Request entry from a device at a reported location",
)
async def submit_access_request(
    request: AccessRequestCreate,
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    geofence: Geofence = Depends(get_geofence),
) -> AccessRequestResponse:
    """
    Submit an access request. The location is checked against the geofence again here.

    - **name**: Visitor's name
    - **location_lat** / **location_lng**: Reported position in decimal degrees
    - **device_id**: Opaque device identifier
    """
    try:
        access_request = await service.create_access_request(db, feed, geofence, request)
    except AccessDeniedError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access Denied")

    return AccessRequestResponse.model_validate(access_request)


@router.get(
    "/latest",
    response_model=AccessRequestResponse,
    summary="Latest request for a device",
    description="The most recent access request made from a device",
)
async def get_latest_access_request(
    device_id: str,
    db: AsyncSession = Depends(get_db),
) -> AccessRequestResponse:
    """Polled by the waiting view until the request is decided."""
    access_request = await service.get_latest_for_device(db, device_id)
    if access_request is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No access request for this device",
        )
    return AccessRequestResponse.model_validate(access_request)


@router.get(
    "",
    response_model=list[AccessRequestResponse],
    summary="List access requests",
    description="All access requests, newest first (admin only)",
)
async def list_access_requests(
    status_filter: Optional[AccessRequestStatusType] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    _: CurrentAdmin = Depends(require_admin_user),
) -> list[AccessRequestResponse]:
    """
    List access requests.

    - **status**: Optional filter (pending, approved, rejected)
    """
    records = await service.list_access_requests(db, status_filter)
    return [AccessRequestResponse.model_validate(r) for r in records]


@router.patch(
    "/{request_id}",
    response_model=AccessRequestResponse,
    summary="Decide an access request",
    description="Approve or reject a pending access request (admin only)",
)
async def decide_access_request(
    request_id: str,
    decision: AccessRequestDecision,
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    current: CurrentAdmin = Depends(require_admin_user),
) -> AccessRequestResponse:
    """
    Approve or reject a request.

    - **status**: approved or rejected
    """
    try:
        access_request = await service.decide_access_request(
            db, feed, request_id, decision.status
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    logger.info(f"Admin {current.admin.id} set request {request_id} to {decision.status}")
    return AccessRequestResponse.model_validate(access_request)


@router.post(
    "/{request_id}/face-approve",
    response_model=FaceApprovalResponse,
    summary="Approve with face verification",
    description="Approve a pending request after matching the admin's face (admin only)",
)
async def face_approve_access_request(
    request_id: str,
    photo: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    verifier: FaceVerifier = Depends(get_face_verifier),
    current: CurrentAdmin = Depends(require_admin_user),
) -> FaceApprovalResponse:
    """Compare a freshly captured photo with the admin's stored reference."""
    probe = await photo.read()
    try:
        access_request, approved, confidence = await service.face_approve_access_request(
            db,
            feed,
            verifier,
            current.admin,
            request_id,
            probe,
            settings.face_match_threshold,
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except FaceVerificationUnavailable:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Face verification is not configured",
        )
    except MissingFaceReferenceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except FaceVerifierError as e:
        logger.error(f"Face verifier fault on request {request_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Face verifier returned an invalid result",
        )

    return FaceApprovalResponse(
        approved=approved,
        confidence=confidence,
        request=AccessRequestResponse.model_validate(access_request),
    )
