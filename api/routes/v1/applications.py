"""Applicant pipeline endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    CurrentAdmin,
    CurrentIdentity,
    get_change_feed,
    get_current_identity,
    require_admin_user,
)
from api.schemas.applications import (
    ApplicationCreate,
    ApplicationResponse,
    AssignInterviewerRequest,
)
from api.services import applications as service
from core.config import settings
from core.exceptions import DuplicateRecordError, InvalidTransitionError, RecordNotFoundError
from core.pipeline import Stage
from core.realtime import ChangeFeed
from database.engine import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/me",
    response_model=ApplicationResponse,
    summary="Get my application",
    description="The signed-in applicant's own application",
)
async def get_my_application(
    identity: CurrentIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    """404 means the applicant has not applied yet."""
    application = await service.get_application_for_user(db, identity.user.id)
    if application is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No application found",
        )
    return ApplicationResponse.model_validate(application)


@router.get(
    "",
    response_model=list[ApplicationResponse],
    summary="List applications",
    description="All applications, newest first (admin only)",
)
async def list_applications(
    stage: Optional[Stage] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: CurrentAdmin = Depends(require_admin_user),
) -> list[ApplicationResponse]:
    """
    List applications.

    - **stage**: Optional stage filter (application, test, interview, completed)
    """
    records = await service.list_applications(db, stage.value if stage else None)
    return [ApplicationResponse.model_validate(r) for r in records]


@router.post(
    "",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open an application",
    description="Open an application for an existing user (admin only)",
)
async def create_application(
    request: ApplicationCreate,
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    _: CurrentAdmin = Depends(require_admin_user),
) -> ApplicationResponse:
    try:
        application = await service.create_application(db, feed, request)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DuplicateRecordError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return ApplicationResponse.model_validate(application)


async def _run_transition(coro) -> ApplicationResponse:
    try:
        application = await coro
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return ApplicationResponse.model_validate(application)


@router.post(
    "/{application_id}/unlock-test",
    response_model=ApplicationResponse,
    summary="Unlock the online test",
)
async def unlock_test(
    application_id: str,
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    _: CurrentAdmin = Depends(require_admin_user),
) -> ApplicationResponse:
    """application -> test"""
    return await _run_transition(service.unlock_test(db, feed, application_id))


@router.post(
    "/{application_id}/assign-interviewer",
    response_model=ApplicationResponse,
    summary="Assign an interviewer",
)
async def assign_interviewer(
    application_id: str,
    request: AssignInterviewerRequest,
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    _: CurrentAdmin = Depends(require_admin_user),
) -> ApplicationResponse:
    """test -> interview, with an interviewer from the roster"""
    return await _run_transition(
        service.assign_interviewer(
            db, feed, application_id, request.interviewer, settings.interviewers
        )
    )


@router.post(
    "/{application_id}/complete",
    response_model=ApplicationResponse,
    summary="Mark an application completed",
)
async def complete_application(
    application_id: str,
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    _: CurrentAdmin = Depends(require_admin_user),
) -> ApplicationResponse:
    """interview -> completed"""
    return await _run_transition(service.complete_application(db, feed, application_id))


@router.delete(
    "/{application_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an application",
)
async def delete_application(
    application_id: str,
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    _: CurrentAdmin = Depends(require_admin_user),
) -> None:
    try:
        await service.delete_application(db, feed, application_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
