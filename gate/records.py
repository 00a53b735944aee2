"""
Backend interfaces the gate engine consumes, and the records they return.

The engine never imports a concrete backend; HttpBackend (gate.http) and
test fakes both satisfy these protocols.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Protocol

from core.exceptions import GateError
from core.pipeline import PipelineState, Stage, calculate_progress
from core.realtime import ChangeEvent
from core.utils.datetime import parse_iso


class RecordStoreError(GateError):
    """A genuine backend failure (network, auth, server error). Not 'no rows'."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def _timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return parse_iso(str(value))


@dataclass(frozen=True)
class AccessRequestRecord:
    id: str
    name: str
    location_lat: float
    location_lng: float
    device_id: str
    status: str
    created_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccessRequestRecord":
        return cls(
            id=data["id"],
            name=data["name"],
            location_lat=float(data["location_lat"]),
            location_lng=float(data["location_lng"]),
            device_id=data["device_id"],
            status=data["status"],
            created_at=_timestamp(data.get("created_at")),
            approved_at=_timestamp(data.get("approved_at")),
        )


@dataclass(frozen=True)
class ApplicationRecord:
    id: str
    user_id: str
    name: str
    email: str
    stage: Stage
    test_unlocked: bool = False
    assigned_interviewer: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def progress(self) -> int:
        return calculate_progress(self.stage, self.test_unlocked)

    @property
    def pipeline_state(self) -> PipelineState:
        return PipelineState(self.stage, self.test_unlocked, self.assigned_interviewer)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApplicationRecord":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            name=data["name"],
            email=data["email"],
            stage=Stage(data["stage"]),
            test_unlocked=bool(data.get("test_unlocked", False)),
            assigned_interviewer=data.get("assigned_interviewer"),
            created_at=_timestamp(data.get("created_at")),
            updated_at=_timestamp(data.get("updated_at")),
        )


@dataclass(frozen=True)
class Identity:
    """A signed-in identity-provider account."""

    user_id: str
    email: str


class AccessRequestStore(Protocol):
    async def insert_access_request(self, record: dict[str, Any]) -> AccessRequestRecord:
        ...

    async def latest_access_request(self, device_id: str) -> Optional[AccessRequestRecord]:
        """Newest request for the device (created_at desc, limit 1), or None."""
        ...

    async def list_access_requests(self, status: str) -> list[AccessRequestRecord]:
        ...

    async def update_access_request_status(
        self, request_id: str, status: str
    ) -> AccessRequestRecord:
        ...


class ApplicationStore(Protocol):
    async def get_application_for_user(self, user_id: str) -> Optional[ApplicationRecord]:
        """The user's application, or None when they have not applied."""
        ...

    async def list_applications(self, stage: Optional[str] = None) -> list[ApplicationRecord]:
        ...

    async def unlock_test(self, application_id: str) -> ApplicationRecord:
        ...

    async def assign_interviewer(self, application_id: str, interviewer: str) -> ApplicationRecord:
        ...

    async def complete_application(self, application_id: str) -> ApplicationRecord:
        ...

    async def list_interviewers(self) -> list[str]:
        """Names an application may be assigned to."""
        ...


class AdminDirectory(Protocol):
    async def get_admin_user(self) -> Optional[dict[str, Any]]:
        """Allowlist entry for the signed-in identity, or None."""
        ...


class IdentityProvider(Protocol):
    async def sign_in(self, email: str, password: str) -> Identity:
        """Raises InvalidCredentialsError on a bad email or password."""
        ...

    async def sign_out(self) -> None:
        ...


class SubscriptionHandle(Protocol):
    def unsubscribe(self) -> None:
        ...


class ChangeSource(Protocol):
    def subscribe(
        self, table: str, callback: Callable[[ChangeEvent], None]
    ) -> SubscriptionHandle:
        ...
