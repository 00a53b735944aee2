"""Common Pydantic schemas shared across the API."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_serializer

from core.utils.datetime import to_iso


class TimestampMixin(BaseModel):
    """Mixin for timestamp fields."""

    created_at: datetime = Field(description="Timestamp when the resource was created")
    updated_at: datetime = Field(description="Timestamp when the resource was last updated")

    @field_serializer("created_at", "updated_at")
    def serialize_timestamps(self, value: datetime) -> str:
        return to_iso(value)


class ErrorDetail(BaseModel):
    """Body of an error response."""

    code: str = Field(description="Error code for programmatic handling")
    message: str = Field(description="Human readable message")
    path: Optional[str] = None
    method: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error response model."""

    error: ErrorDetail


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
