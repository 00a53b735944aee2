"""Applicant pipeline record."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from core.pipeline import PipelineState, Stage
from core.utils.datetime import now
from database.engine import Base


class Application(Base):
    """
    One applicant's position in the application -> test -> interview ->
    completed pipeline. At most one per user.
    """

    __tablename__: str = "applications"
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)

    stage: Mapped[Stage] = mapped_column(
        String(20), default=Stage.APPLICATION.value, nullable=False, index=True
    )
    test_unlocked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    assigned_interviewer: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, onupdate=now, nullable=False
    )

    __table_args__ = (
        Index("idx_applications_stage_created", "stage", "created_at"),
    )

    @property
    def pipeline_state(self) -> PipelineState:
        return PipelineState(
            stage=Stage(self.stage),
            test_unlocked=self.test_unlocked,
            assigned_interviewer=self.assigned_interviewer,
        )

    def apply_state(self, state: PipelineState) -> None:
        self.stage = state.stage.value
        self.test_unlocked = state.test_unlocked
        self.assigned_interviewer = state.assigned_interviewer
