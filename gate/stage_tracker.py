"""Candidate-facing application status view."""

import logging
from dataclasses import dataclass
from typing import Optional

from core.pipeline import Stage
from core.realtime import ChangeEvent, ChangeType
from gate.config import GateConfig
from gate.errors import ApplicationLoadError
from gate.records import (
    ApplicationRecord,
    ApplicationStore,
    ChangeSource,
    RecordStoreError,
    SubscriptionHandle,
)
from gate.session import Redirect, SessionContext

logger = logging.getLogger(__name__)

APPLICATIONS_TABLE = "applications"


@dataclass(frozen=True)
class CallToAction:
    label: str
    url: str


class ApplicationStatusView:
    """
    Shows the viewer's own application and keeps it current from change events.

    "No application" is a normal state that offers the external application
    form. A fetch failure is reported separately in `error`.
    """

    def __init__(
        self,
        records: ApplicationStore,
        feed: ChangeSource,
        user_id: str,
        config: Optional[GateConfig] = None,
        context: Optional[SessionContext] = None,
    ):
        self.records = records
        self.feed = feed
        self.user_id = user_id
        self.config = config or GateConfig()
        self.context = context

        self.application: Optional[ApplicationRecord] = None
        self.loading = False
        self.error: Optional[str] = None
        self._subscription: Optional[SubscriptionHandle] = None
        self._events_seen = 0

    @property
    def mounted(self) -> bool:
        return self._subscription is not None

    @property
    def is_empty(self) -> bool:
        return self.application is None and self.error is None and not self.loading

    @property
    def stage(self) -> Optional[Stage]:
        return self.application.stage if self.application else None

    @property
    def progress(self) -> int:
        return self.application.progress if self.application else 0

    @property
    def call_to_action(self) -> Optional[CallToAction]:
        if self.application is None:
            if self.error is not None:
                return None
            return CallToAction("Start Application", self.config.application_form_url)
        if self.application.stage == Stage.TEST and self.application.test_unlocked:
            return CallToAction("Take Online Test", self.config.online_test_url)
        return None

    async def mount(self) -> Optional[Redirect]:
        """
        Load the application and subscribe to changes.

        Returns a redirect instead when the session context says the visitor
        may not see this view.
        """
        if self.context is not None:
            redirect = self.context.require_valid_session()
            if redirect is not None:
                return redirect

        # remounting must not leave a second subscription behind
        self.unmount()
        self._subscription = self.feed.subscribe(APPLICATIONS_TABLE, self.handle_change)
        await self.refresh()
        return None

    async def refresh(self) -> None:
        """
        Fetch the application.

        A change event that arrives while the fetch is in flight is newer
        than the fetched snapshot, so the snapshot is dropped.
        """
        self.loading = True
        self.error = None
        seen = self._events_seen
        try:
            application = await self.records.get_application_for_user(self.user_id)
        except RecordStoreError as e:
            if self._events_seen == seen:
                logger.error(f"Failed to load application status: {e}")
                self.error = ApplicationLoadError().message
        else:
            if self._events_seen == seen:
                self.application = application
            else:
                logger.debug("Discarding application snapshot older than a change event")
        finally:
            self.loading = False

    def unmount(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def handle_change(self, event: ChangeEvent) -> None:
        if event.table != APPLICATIONS_TABLE:
            return

        if event.type == ChangeType.DELETE:
            if event.old and event.old.get("user_id") == self.user_id:
                self._events_seen += 1
                self.application = None
            return

        if not event.new or event.new.get("user_id") != self.user_id:
            return
        self._events_seen += 1
        self.application = ApplicationRecord.from_dict(event.new)
        self.error = None
