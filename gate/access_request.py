"""
Access request lifecycle: UNSUBMITTED -> PENDING -> APPROVED | REJECTED.

AccessRequestForm captures a location and submits the request;
ApprovalPoller runs on the waiting view until an admin decides.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum as PyEnum
from typing import Awaitable, Callable, Optional

from core.geofence import Coordinates, GeofenceVerdict
from gate.config import GateConfig
from gate.errors import (
    AccessGateError,
    LocationRequiredError,
    LocationTimeoutError,
    NameRequiredError,
    OutOfRangeError,
    SubmissionFailedError,
)
from gate.geolocation import GeolocationProvider, PositionOptions, UnsupportedGeolocationProvider
from gate.records import AccessRequestRecord, AccessRequestStore, RecordStoreError
from gate.session import (
    TO_ACCESS_REJECTED,
    TO_DASHBOARD,
    TO_WAITING,
    Redirect,
    SessionContext,
)

logger = logging.getLogger(__name__)


class AccessRequestState(str, PyEnum):
    UNSUBMITTED = "unsubmitted"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


TERMINAL_STATES = frozenset({AccessRequestState.APPROVED, AccessRequestState.REJECTED})


class AccessRequestForm:
    """View model of the access page."""

    def __init__(
        self,
        context: SessionContext,
        records: AccessRequestStore,
        geolocation: Optional[GeolocationProvider] = None,
        config: Optional[GateConfig] = None,
        rejected: bool = False,
    ):
        self.context = context
        self.records = records
        self.geolocation = geolocation or UnsupportedGeolocationProvider()
        self.config = config or GateConfig()
        self.geofence = self.config.geofence

        # set from the ?rejected=true query of a previous attempt
        self.rejected = rejected

        self.state = AccessRequestState.UNSUBMITTED
        self.location: Optional[Coordinates] = None
        self.verdict: Optional[GeofenceVerdict] = None
        self.record: Optional[AccessRequestRecord] = None
        self.error: Optional[str] = None
        self.loading = False
        self.locating = False

    @property
    def position_options(self) -> PositionOptions:
        return PositionOptions(
            enable_high_accuracy=True,
            timeout=self.config.location_timeout_seconds,
            maximum_age=0.0,
        )

    def on_mount(self) -> Optional[Redirect]:
        """Visitors with a live session skip straight to the dashboard."""
        if self.context.session.is_session_valid():
            return TO_DASHBOARD
        return None

    async def capture_location(self) -> Optional[GeofenceVerdict]:
        """
        Request a fresh fix and evaluate it immediately.

        An out-of-range fix sets "Access Denied" before any submission.
        There is no automatic retry; the visitor triggers this again.
        """
        self.error = None
        self.locating = True
        options = self.position_options
        try:
            position = await asyncio.wait_for(
                self.geolocation.get_current_position(options),
                timeout=options.timeout,
            )
        except asyncio.TimeoutError:
            self.error = LocationTimeoutError().message
            return None
        except AccessGateError as e:
            self.error = e.message
            return None
        finally:
            self.locating = False

        self.location = position
        self.verdict = self.geofence.evaluate(position)
        if not self.verdict.within_range:
            self.error = OutOfRangeError(self.verdict.distance_km).message
        return self.verdict

    def build_request(self, name: str) -> dict:
        """
        Check the submission guards in order and build the insert payload.

        Raises:
            NameRequiredError, LocationRequiredError, OutOfRangeError
        """
        name = (name or "").strip()
        if not name:
            raise NameRequiredError()
        if self.location is None:
            raise LocationRequiredError()

        verdict = self.geofence.evaluate(self.location)
        if not verdict.within_range:
            raise OutOfRangeError(verdict.distance_km)

        return {
            "name": name,
            "location_lat": self.location.latitude,
            "location_lng": self.location.longitude,
            "device_id": self.context.device.get_device_id(),
            "status": AccessRequestState.PENDING.value,
            "photo_url": None,
            "photo_expires_at": None,
        }

    async def submit(self, name: str) -> Optional[Redirect]:
        """
        Submit the request. Returns the waiting-view redirect on success;
        otherwise sets `error` and returns None.
        """
        self.error = None
        try:
            payload = self.build_request(name)
        except AccessGateError as e:
            self.error = e.message
            return None

        self.loading = True
        try:
            self.record = await self.records.insert_access_request(payload)
        except RecordStoreError as e:
            logger.error(f"Access request submission failed: {e}")
            self.error = SubmissionFailedError().message
            return None
        finally:
            self.loading = False

        self.state = AccessRequestState.PENDING
        self.rejected = False
        logger.info(f"Access request {self.record.id} submitted")
        return TO_WAITING


@dataclass(frozen=True)
class LoadingMessage:
    title: str
    description: str


LOADING_MESSAGES: tuple[LoadingMessage, ...] = (
    LoadingMessage(
        "Protecting Our Planet",
        "Every small action contributes to a larger environmental impact.",
    ),
    LoadingMessage(
        "Global Community",
        "Connecting environmental advocates from around the world.",
    ),
    LoadingMessage(
        "Together We're Stronger",
        "Building a sustainable future through collective action.",
    ),
    LoadingMessage(
        "Passion for Nature",
        "Driven by love for our environment and future generations.",
    ),
)


class ApprovalPoller:
    """
    Waiting-view controller.

    Polls the latest request for this device every `poll_interval_seconds`
    and rotates the cosmetic loading message every `message_rotation_seconds`.
    Both loops belong to one scope: `start()` returns a disposer that cancels
    them together, and reaching a terminal status stops them as well.

        async with ApprovalPoller(context, records) as poller:
            redirect = await poller.wait()
    """

    def __init__(
        self,
        context: SessionContext,
        records: AccessRequestStore,
        config: Optional[GateConfig] = None,
        on_redirect: Optional[Callable[[Redirect], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        messages: tuple[LoadingMessage, ...] = LOADING_MESSAGES,
    ):
        self.context = context
        self.records = records
        self.config = config or GateConfig()
        self.on_redirect = on_redirect
        self.sleep = sleep
        self.messages = messages

        self.state = AccessRequestState.PENDING
        self.approved = False
        self.redirect: Optional[Redirect] = None
        self.message_index = 0
        self.checks = 0
        self.failures = 0

        self._poll_task: Optional[asyncio.Task] = None
        self._rotation_task: Optional[asyncio.Task] = None
        self._disposed = False

    @property
    def current_message(self) -> LoadingMessage:
        return self.messages[self.message_index]

    @property
    def running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def rotate_message(self) -> LoadingMessage:
        self.message_index = (self.message_index + 1) % len(self.messages)
        return self.current_message

    async def check_once(self) -> Optional[AccessRequestState]:
        """
        One polling tick.

        Returns the observed state, or None when nothing was observed (no
        record yet, or a transient fetch error that the next tick retries).
        """
        self.checks += 1
        device_id = self.context.device.get_device_id()
        try:
            record = await self.records.latest_access_request(device_id)
        except RecordStoreError as e:
            self.failures += 1
            logger.warning(f"Approval check failed, retrying next tick: {e}")
            return None

        if record is None:
            return None

        observed = AccessRequestState(record.status)
        if observed == AccessRequestState.APPROVED and not self.approved:
            self.approved = True
            self.state = AccessRequestState.APPROVED
            self.context.session.set_approval_session()
            logger.info("Access request approved")
        elif observed == AccessRequestState.REJECTED:
            self.state = AccessRequestState.REJECTED
            logger.info("Access request rejected")
        return observed

    async def _poll_loop(self) -> Optional[Redirect]:
        try:
            while True:
                observed = await self.check_once()
                if observed in TERMINAL_STATES:
                    break
                await self.sleep(self.config.poll_interval_seconds)

            if self.state == AccessRequestState.APPROVED:
                # success state stays on screen before leaving
                await self.sleep(self.config.approval_redirect_delay_seconds)
                return self._finish(TO_DASHBOARD)
            return self._finish(TO_ACCESS_REJECTED)
        finally:
            if self._rotation_task is not None:
                self._rotation_task.cancel()

    async def _rotation_loop(self) -> None:
        while True:
            await self.sleep(self.config.message_rotation_seconds)
            self.rotate_message()

    def _finish(self, redirect: Redirect) -> Redirect:
        self.redirect = redirect
        if self.on_redirect is not None:
            self.on_redirect(redirect)
        return redirect

    def start(self) -> Callable[[], None]:
        """Start both loops. Returns an idempotent disposer."""
        if self._disposed:
            raise RuntimeError("ApprovalPoller has been disposed")
        if self._poll_task is None:
            self._rotation_task = asyncio.create_task(self._rotation_loop())
            self._poll_task = asyncio.create_task(self._poll_loop())
        return self.dispose

    def dispose(self) -> None:
        """Cancel both loops. Safe to call more than once."""
        self._disposed = True
        for task in (self._poll_task, self._rotation_task):
            if task is not None and not task.done():
                task.cancel()

    async def wait(self) -> Optional[Redirect]:
        """Wait for the terminal redirect. None if disposed first."""
        if self._poll_task is None:
            self.start()
        try:
            return await self._poll_task
        except asyncio.CancelledError:
            if self._disposed:
                return None
            raise

    async def __aenter__(self) -> "ApprovalPoller":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.dispose()
        tasks = [t for t in (self._poll_task, self._rotation_task) if t is not None]
        await asyncio.gather(*tasks, return_exceptions=True)
