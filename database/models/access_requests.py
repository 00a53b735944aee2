"""Access request model for the location-gated entry flow."""

import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import DateTime, Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.utils.datetime import now
from database.engine import Base


class AccessRequestStatus(str, PyEnum):
    """Status of an access request."""
    PENDING = "pending"  # Awaiting admin decision
    APPROVED = "approved"  # Admitted; device may start a session
    REJECTED = "rejected"  # Turned away


class AccessRequest(Base):
    """
    A visitor's request to pass the gate, made from a device at a location.
    """

    __tablename__: str = "access_requests"
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location_lat: Mapped[float] = mapped_column(Float, nullable=False)
    location_lng: Mapped[float] = mapped_column(Float, nullable=False)
    device_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    status: Mapped[AccessRequestStatus] = mapped_column(
        String(20),
        default=AccessRequestStatus.PENDING.value,
        nullable=False,
        index=True,
    )

    # Legacy photo columns, never written
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False, index=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("idx_access_requests_device_created", "device_id", "created_at"),
        Index("idx_access_requests_status_created", "status", "created_at"),
    )
