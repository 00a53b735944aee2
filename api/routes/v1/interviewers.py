"""Interviewer roster endpoint."""

from fastapi import APIRouter

from api.schemas.applications import InterviewerRoster
from core.config import settings

router = APIRouter()


@router.get("", response_model=InterviewerRoster, summary="Interviewer roster")
async def list_interviewers() -> InterviewerRoster:
    return InterviewerRoster(interviewers=list(settings.interviewers))
