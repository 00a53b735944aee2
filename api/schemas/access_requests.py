"""Access request API schemas."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from core.utils.datetime import to_iso

# Type alias for access request statuses
AccessRequestStatusType = Literal["pending", "approved", "rejected"]


class AccessRequestCreate(BaseModel):
    """Schema for submitting an access request."""

    name: str = Field(..., min_length=1, max_length=255, description="Visitor's name")
    location_lat: float = Field(..., ge=-90, le=90, description="Reported latitude")
    location_lng: float = Field(..., ge=-180, le=180, description="Reported longitude")
    device_id: str = Field(..., min_length=1, max_length=64, description="Opaque device identifier")

    @field_validator("name", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip whitespace so a blank name fails min_length."""
        if isinstance(v, str):
            return v.strip()
        return v


class AccessRequestResponse(BaseModel):
    """Schema for an access request record."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "6f1c2a9e-8d4b-4e0f-9a51-0c7d2b3e4f56",
                "name": "Jane Doe",
                "location_lat": 22.3193,
                "location_lng": 114.2057,
                "device_id": "device_k3j9x0a2bl1x2y3z4",
                "status": "pending",
                "photo_url": None,
                "photo_expires_at": None,
                "created_at": "2026-10-19T12:00:00+00:00",
                "approved_at": None,
            }
        },
    )

    id: str
    name: str
    location_lat: float
    location_lng: float
    device_id: str
    status: AccessRequestStatusType
    photo_url: Optional[str] = None
    photo_expires_at: Optional[datetime] = None
    created_at: datetime
    approved_at: Optional[datetime] = None

    @field_serializer("created_at", "approved_at", "photo_expires_at")
    def serialize_timestamps(self, value: Optional[datetime]) -> Optional[str]:
        return to_iso(value) if value else None


class AccessRequestDecision(BaseModel):
    """Schema for an admin decision on a pending request."""

    status: Literal["approved", "rejected"] = Field(..., description="Decision")


class FaceApprovalResponse(BaseModel):
    """Outcome of a face-verified approval."""

    approved: bool
    confidence: float = Field(ge=0, le=1)
    request: AccessRequestResponse
