"""Identity provider schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class SignInRequest(BaseModel):
    """Email and password."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email", mode="after")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class SignUpRequest(SignInRequest):
    """New account credentials."""

    password: str = Field(..., min_length=8, max_length=128)


class TokenResponse(BaseModel):
    """Issued bearer token."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user_id: str
    email: str


class IdentityResponse(BaseModel):
    """The authenticated identity."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    created_at: Optional[datetime] = None


class AdminUserResponse(BaseModel):
    """An allowlisted admin."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    face_photo_url: Optional[str] = None
    has_face_reference: bool = False
    created_at: datetime
