"""In-memory backends for the gate engine tests."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest

from core import pipeline
from core.pipeline import DEFAULT_INTERVIEWERS, Stage
from core.realtime import ChangeEvent, ChangeFeed, ChangeType
from gate.config import GateConfig
from gate.records import AccessRequestRecord, ApplicationRecord, RecordStoreError
from gate.session import SessionContext
from gate.storage import MemoryStore

EPOCH = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeAccessRequestStore:
    """Access requests kept in a list, newest last."""

    def __init__(self):
        self.records: list[AccessRequestRecord] = []
        self.inserted: list[dict[str, Any]] = []
        self.fail_with: Optional[Exception] = None

    def add(self, **fields) -> AccessRequestRecord:
        defaults = {
            "id": f"req-{len(self.records) + 1}",
            "name": "Jane Doe",
            "location_lat": 22.3193,
            "location_lng": 114.2057,
            "device_id": "device_test",
            "status": "pending",
            "created_at": EPOCH + timedelta(seconds=len(self.records)),
        }
        defaults.update(fields)
        record = AccessRequestRecord(**defaults)
        self.records.append(record)
        return record

    def set_status(self, request_id: str, status: str) -> None:
        for i, record in enumerate(self.records):
            if record.id == request_id:
                self.records[i] = replace(record, status=status)

    async def insert_access_request(self, record: dict[str, Any]) -> AccessRequestRecord:
        if self.fail_with is not None:
            raise self.fail_with
        self.inserted.append(record)
        return self.add(
            name=record["name"],
            location_lat=record["location_lat"],
            location_lng=record["location_lng"],
            device_id=record["device_id"],
            status=record["status"],
        )

    async def latest_access_request(self, device_id: str) -> Optional[AccessRequestRecord]:
        if self.fail_with is not None:
            raise self.fail_with
        matching = [r for r in self.records if r.device_id == device_id]
        return max(matching, key=lambda r: r.created_at) if matching else None

    async def list_access_requests(self, status: str) -> list[AccessRequestRecord]:
        matching = [r for r in self.records if r.status == status]
        return sorted(matching, key=lambda r: r.created_at, reverse=True)

    async def update_access_request_status(self, request_id: str, status: str) -> AccessRequestRecord:
        if self.fail_with is not None:
            raise self.fail_with
        for record in self.records:
            if record.id == request_id:
                if record.status != "pending":
                    raise RecordStoreError(f"Access request is already {record.status}", 409)
                self.set_status(request_id, status)
                return next(r for r in self.records if r.id == request_id)
        raise RecordStoreError(f"Access request {request_id} not found", 404)


class FakeApplicationStore:
    """Applications keyed by id; transitions use the real pipeline rules."""

    def __init__(self):
        self.applications: dict[str, ApplicationRecord] = {}
        self.fail_with: Optional[Exception] = None
        self.calls: list[tuple] = []
        self.roster = list(DEFAULT_INTERVIEWERS)

    def add(self, **fields) -> ApplicationRecord:
        number = len(self.applications) + 1
        defaults = {
            "id": f"app-{number}",
            "user_id": f"user-{number}",
            "name": f"Applicant {number}",
            "email": f"applicant{number}@example.com",
            "stage": Stage.APPLICATION,
            "created_at": EPOCH + timedelta(seconds=number),
        }
        defaults.update(fields)
        record = ApplicationRecord(**defaults)
        self.applications[record.id] = record
        return record

    async def get_application_for_user(self, user_id: str) -> Optional[ApplicationRecord]:
        if self.fail_with is not None:
            raise self.fail_with
        return next((a for a in self.applications.values() if a.user_id == user_id), None)

    async def list_applications(self, stage: Optional[str] = None) -> list[ApplicationRecord]:
        records = [a for a in self.applications.values() if stage is None or a.stage == stage]
        return sorted(records, key=lambda a: a.created_at, reverse=True)

    async def _apply(self, application_id: str, step) -> ApplicationRecord:
        if self.fail_with is not None:
            raise self.fail_with
        current = self.applications.get(application_id)
        if current is None:
            raise RecordStoreError(f"Application {application_id} not found", 404)
        try:
            state = step(current.pipeline_state)
        except pipeline.InvalidTransitionError as e:
            raise RecordStoreError(str(e), 409) from e
        updated = replace(
            current,
            stage=state.stage,
            test_unlocked=state.test_unlocked,
            assigned_interviewer=state.assigned_interviewer,
        )
        self.applications[application_id] = updated
        return updated

    async def unlock_test(self, application_id: str) -> ApplicationRecord:
        self.calls.append(("unlock_test", application_id))
        return await self._apply(application_id, pipeline.unlock_test)

    async def assign_interviewer(self, application_id: str, interviewer: str) -> ApplicationRecord:
        self.calls.append(("assign_interviewer", application_id, interviewer))
        return await self._apply(
            application_id,
            lambda state: pipeline.assign_interviewer(state, interviewer, self.roster),
        )

    async def complete_application(self, application_id: str) -> ApplicationRecord:
        self.calls.append(("complete_application", application_id))
        return await self._apply(application_id, pipeline.complete)

    async def list_interviewers(self) -> list[str]:
        return list(self.roster)


def application_row(**fields) -> dict[str, Any]:
    """A serialized applications row as carried by change events."""
    row = {
        "id": "app-1",
        "user_id": "user-1",
        "name": "Jane Doe",
        "email": "jane@example.com",
        "stage": "application",
        "test_unlocked": False,
        "assigned_interviewer": None,
        "created_at": "2026-10-19T12:00:00+00:00",
        "updated_at": "2026-10-19T12:00:00+00:00",
    }
    row.update(fields)
    return row


def change(type_: ChangeType, table: str = "applications", new=None, old=None) -> ChangeEvent:
    return ChangeEvent(table=table, type=type_, new=new, old=old)


@pytest.fixture
def config():
    return GateConfig()


@pytest.fixture
def local_store():
    return MemoryStore()


@pytest.fixture
def context(local_store):
    return SessionContext.create(local_store)


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def access_requests():
    return FakeAccessRequestStore()


@pytest.fixture
def applications():
    return FakeApplicationStore()


@pytest.fixture
def make_row():
    """Factory for serialized applications rows."""
    return application_row


@pytest.fixture
def make_event():
    """Factory for change events."""
    return change
