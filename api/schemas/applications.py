"""Applicant pipeline API schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, computed_field, field_validator

from api.schemas.common import TimestampMixin
from core.pipeline import Stage, calculate_progress


class ApplicationCreate(BaseModel):
    """Schema for opening an application for an existing user."""

    user_id: str = Field(..., min_length=1, description="Identity the application belongs to")
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr

    @field_validator("name", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class AssignInterviewerRequest(BaseModel):
    """Schema for assigning an interviewer from the roster."""

    interviewer: str = Field(..., min_length=1, max_length=255)


class ApplicationResponse(TimestampMixin):
    """Schema for an application record with derived progress."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    email: str
    stage: Stage
    test_unlocked: bool
    assigned_interviewer: Optional[str] = None

    @computed_field
    @property
    def progress(self) -> int:
        return calculate_progress(self.stage, self.test_unlocked)


class InterviewerRoster(BaseModel):
    """The fixed interviewer roster."""

    interviewers: list[str]
