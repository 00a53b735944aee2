"""
Application service functions for API endpoints.

Persists the applicant pipeline. Transition rules live in core.pipeline;
these functions load the row, apply the pure transition, commit and publish
the change.
"""

from typing import Callable, Optional
import logging

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.applications import ApplicationCreate, ApplicationResponse
from core import pipeline
from core.exceptions import DuplicateRecordError, RecordNotFoundError
from core.pipeline import PipelineState
from core.realtime import ChangeEvent, ChangeFeed, ChangeType
from database.models.applications import Application
from database.models.users import User

logger = logging.getLogger(__name__)

TABLE = "applications"


def serialize(application: Application) -> dict:
    """JSON-ready snapshot used in change events."""
    return ApplicationResponse.model_validate(application).model_dump(mode="json")


async def get_application(db: AsyncSession, application_id: str) -> Application:
    """
    Get an application by id.

    Raises:
        RecordNotFoundError: If no such application exists
    """
    result = await db.execute(select(Application).where(Application.id == application_id))
    application = result.scalars().first()
    if application is None:
        raise RecordNotFoundError("Application", application_id)
    return application


async def get_application_for_user(db: AsyncSession, user_id: str) -> Optional[Application]:
    """The user's own application, or None if they have not applied."""
    result = await db.execute(select(Application).where(Application.user_id == user_id))
    return result.scalars().first()


async def list_applications(db: AsyncSession, stage: Optional[str] = None) -> list[Application]:
    """All applications, newest first, optionally filtered by stage."""
    query = select(Application).order_by(desc(Application.created_at))
    if stage:
        query = query.where(Application.stage == stage)
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_application(
    db: AsyncSession,
    feed: ChangeFeed,
    data: ApplicationCreate,
) -> Application:
    """
    Open an application at the first stage.

    Raises:
        RecordNotFoundError: If the user does not exist
        DuplicateRecordError: If the user already has an application
    """
    user = await db.get(User, data.user_id)
    if user is None:
        raise RecordNotFoundError("User", data.user_id)
    if await get_application_for_user(db, data.user_id) is not None:
        raise DuplicateRecordError("Application", "User already has an application")

    initial = pipeline.validate_state(PipelineState())
    application = Application(user_id=data.user_id, name=data.name, email=data.email)
    application.apply_state(initial)

    db.add(application)
    await db.commit()
    await db.refresh(application)

    logger.info(f"Opened application {application.id}")
    feed.publish(ChangeEvent(table=TABLE, type=ChangeType.INSERT, new=serialize(application)))
    return application


async def _transition(
    db: AsyncSession,
    feed: ChangeFeed,
    application_id: str,
    step: Callable[[PipelineState], PipelineState],
) -> Application:
    application = await get_application(db, application_id)
    old = serialize(application)

    # raises InvalidTransitionError before anything is written
    application.apply_state(step(application.pipeline_state))

    await db.commit()
    await db.refresh(application)

    logger.info(f"Application {application_id} moved to {application.stage}")
    feed.publish(
        ChangeEvent(table=TABLE, type=ChangeType.UPDATE, new=serialize(application), old=old)
    )
    return application


async def unlock_test(db: AsyncSession, feed: ChangeFeed, application_id: str) -> Application:
    return await _transition(db, feed, application_id, pipeline.unlock_test)


async def assign_interviewer(
    db: AsyncSession,
    feed: ChangeFeed,
    application_id: str,
    interviewer: str,
    roster: list[str],
) -> Application:
    return await _transition(
        db,
        feed,
        application_id,
        lambda state: pipeline.assign_interviewer(state, interviewer, roster),
    )


async def complete_application(
    db: AsyncSession,
    feed: ChangeFeed,
    application_id: str,
) -> Application:
    return await _transition(db, feed, application_id, pipeline.complete)


async def delete_application(db: AsyncSession, feed: ChangeFeed, application_id: str) -> None:
    """Delete an application and publish the before image."""
    application = await get_application(db, application_id)
    old = serialize(application)

    await db.delete(application)
    await db.commit()

    logger.info(f"Deleted application {application_id}")
    feed.publish(ChangeEvent(table=TABLE, type=ChangeType.DELETE, old=old))
