"""
Admin review console.

Sign-in is two steps: the identity provider authenticates, then the admin
allowlist must contain the identity. A miss signs the identity out again
immediately.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from core.pipeline import Stage
from core.realtime import ChangeEvent
from gate.config import GateConfig
from gate.errors import (
    AccessGateError,
    AdminActionError,
    ApplicationsLoadError,
    RequestsLoadError,
    UnauthorizedAdminError,
    UnknownInterviewerError,
)
from gate.records import (
    AccessRequestRecord,
    AccessRequestStore,
    AdminDirectory,
    ApplicationRecord,
    ApplicationStore,
    ChangeSource,
    Identity,
    IdentityProvider,
    RecordStoreError,
    SubscriptionHandle,
)

logger = logging.getLogger(__name__)


@dataclass
class RequestBoard:
    """Access requests split by status, newest first."""

    pending: list[AccessRequestRecord] = field(default_factory=list)
    approved: list[AccessRequestRecord] = field(default_factory=list)
    rejected: list[AccessRequestRecord] = field(default_factory=list)


class AdminConsole:
    def __init__(
        self,
        identity: IdentityProvider,
        admins: AdminDirectory,
        requests: AccessRequestStore,
        applications: ApplicationStore,
        feed: ChangeSource,
        config: Optional[GateConfig] = None,
    ):
        self.identity_provider = identity
        self.admins = admins
        self.requests = requests
        self.applications = applications
        self.feed = feed
        self.config = config or GateConfig()

        self.identity: Optional[Identity] = None
        self.admin: Optional[dict] = None
        self.error: Optional[str] = None
        self.board = RequestBoard()
        self.pipeline: dict[Stage, list[ApplicationRecord]] = {}
        self.interviewers: tuple[str, ...] = tuple(self.config.interviewers)
        self._subscriptions: list[SubscriptionHandle] = []

    @property
    def is_admin(self) -> bool:
        return self.admin is not None

    async def sign_in(self, email: str, password: str) -> Identity:
        """
        Authenticate and check the allowlist.

        Raises:
            InvalidCredentialsError: Bad email or password
            UnauthorizedAdminError: Authenticated but not an admin (signed out again)
        """
        self.error = None
        try:
            identity = await self.identity_provider.sign_in(email, password)
        except AccessGateError as e:
            self.error = e.message
            raise

        try:
            admin = await self.admins.get_admin_user()
        except RecordStoreError as e:
            logger.error(f"Admin allowlist lookup failed: {e}")
            admin = None

        if admin is None:
            await self.identity_provider.sign_out()
            self.identity = None
            self.admin = None
            error = UnauthorizedAdminError()
            self.error = error.message
            logger.warning("Sign-in rejected: not on admin allowlist")
            raise error

        self.identity = identity
        self.admin = admin
        logger.info("Admin signed in")
        await self.load_interviewers()
        return identity

    async def sign_out(self) -> None:
        self.close()
        if self.identity is not None:
            await self.identity_provider.sign_out()
        self.identity = None
        self.admin = None

    def _require_admin(self) -> None:
        if not self.is_admin:
            raise UnauthorizedAdminError()

    async def load_interviewers(self) -> tuple[str, ...]:
        """Take the server's roster; the configured one stays on failure."""
        self._require_admin()
        try:
            roster = await self.applications.list_interviewers()
        except RecordStoreError as e:
            logger.warning(f"Using configured interviewer roster: {e}")
            return self.interviewers
        if roster:
            self.interviewers = tuple(roster)
        return self.interviewers

    async def load_requests(self) -> RequestBoard:
        """
        Reload the request board.

        A failed load keeps the previous board and reports the failure in
        `error`.
        """
        self._require_admin()
        try:
            pending, approved, rejected = await asyncio.gather(
                self.requests.list_access_requests("pending"),
                self.requests.list_access_requests("approved"),
                self.requests.list_access_requests("rejected"),
            )
        except RecordStoreError as e:
            logger.error(f"Failed to load access requests: {e}")
            self.error = RequestsLoadError().message
            return self.board
        self.board = RequestBoard(pending=pending, approved=approved, rejected=rejected)
        return self.board

    async def _decide(self, request_id: str, status: str) -> AccessRequestRecord:
        self._require_admin()
        self.error = None
        try:
            record = await self.requests.update_access_request_status(request_id, status)
        except RecordStoreError as e:
            logger.error(f"Failed to set request {request_id} to {status}: {e}")
            error = AdminActionError(f"Failed to update request: {e}")
            self.error = error.message
            raise error from e
        await self.load_requests()
        return record

    async def approve(self, request_id: str) -> AccessRequestRecord:
        return await self._decide(request_id, "approved")

    async def reject(self, request_id: str) -> AccessRequestRecord:
        return await self._decide(request_id, "rejected")

    async def load_applications(self) -> dict[Stage, list[ApplicationRecord]]:
        self._require_admin()
        try:
            records = await self.applications.list_applications()
        except RecordStoreError as e:
            logger.error(f"Failed to load applications: {e}")
            self.error = ApplicationsLoadError().message
            return self.pipeline
        grouped: dict[Stage, list[ApplicationRecord]] = {stage: [] for stage in Stage}
        for record in records:
            grouped[record.stage].append(record)
        self.pipeline = grouped
        return grouped

    async def _application_action(self, action, *args) -> ApplicationRecord:
        self._require_admin()
        self.error = None
        try:
            record = await action(*args)
        except RecordStoreError as e:
            logger.error(f"Application action failed: {e}")
            error = AdminActionError(f"Failed to update application: {e}")
            self.error = error.message
            raise error from e
        await self.load_applications()
        return record

    async def unlock_test(self, application_id: str) -> ApplicationRecord:
        return await self._application_action(self.applications.unlock_test, application_id)

    async def assign_interviewer(self, application_id: str, interviewer: str) -> ApplicationRecord:
        if interviewer not in self.interviewers:
            error = UnknownInterviewerError()
            self.error = error.message
            raise error
        return await self._application_action(
            self.applications.assign_interviewer, application_id, interviewer
        )

    async def complete(self, application_id: str) -> ApplicationRecord:
        return await self._application_action(
            self.applications.complete_application, application_id
        )

    def watch_requests(self, callback: Callable[[ChangeEvent], None]) -> SubscriptionHandle:
        self._require_admin()
        subscription = self.feed.subscribe("access_requests", callback)
        self._subscriptions.append(subscription)
        return subscription

    def watch_applications(self, callback: Callable[[ChangeEvent], None]) -> SubscriptionHandle:
        self._require_admin()
        subscription = self.feed.subscribe("applications", callback)
        self._subscriptions.append(subscription)
        return subscription

    def close(self) -> None:
        """Release every change subscription the console holds."""
        while self._subscriptions:
            self._subscriptions.pop().unsubscribe()
