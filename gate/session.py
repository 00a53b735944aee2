"""
Advisory client-side session.

A device is "in session" for a fixed window after its access request was
approved. Nothing here is verified by the server; every protected view
re-checks on mount and sends the visitor back to the access page.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum as PyEnum
from typing import Callable, Optional
from urllib.parse import urlencode

from core.utils.datetime import elapsed_since, now, parse_iso, to_iso
from gate.device import DeviceIdentityProvider
from gate.storage import APPROVED_AT_KEY, LocalStore

logger = logging.getLogger(__name__)

ACCESS_PATH = "/access"
WAITING_PATH = "/loading"
DASHBOARD_PATH = "/dashboard"

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class Redirect:
    """A navigation the view asks its host to perform."""

    path: str
    query: tuple[tuple[str, str], ...] = ()

    @property
    def url(self) -> str:
        if not self.query:
            return self.path
        return f"{self.path}?{urlencode(self.query)}"


TO_ACCESS = Redirect(ACCESS_PATH)
TO_ACCESS_REJECTED = Redirect(ACCESS_PATH, (("rejected", "true"),))
TO_WAITING = Redirect(WAITING_PATH)
TO_DASHBOARD = Redirect(DASHBOARD_PATH)


class SessionState(str, PyEnum):
    NO_SESSION = "no_session"
    VALID = "valid"
    EXPIRED = "expired"


class SessionLifecycleManager:
    """Approval timestamp bookkeeping with an injectable clock."""

    def __init__(
        self,
        store: LocalStore,
        device: DeviceIdentityProvider,
        validity: timedelta = timedelta(days=3),
        clock: Clock = now,
    ):
        self.store = store
        self.device = device
        self.validity = validity
        self.clock = clock

    def approved_at(self) -> Optional[datetime]:
        raw = self.store.get_item(APPROVED_AT_KEY)
        if not raw:
            return None
        approved_at = parse_iso(raw)
        if approved_at is None:
            logger.warning("Ignoring unparsable approval timestamp")
        return approved_at

    def state(self) -> SessionState:
        approved_at = self.approved_at()
        if approved_at is None:
            return SessionState.NO_SESSION
        if elapsed_since(approved_at, self.clock()) < self.validity:
            return SessionState.VALID
        return SessionState.EXPIRED

    def is_session_valid(self) -> bool:
        return self.state() == SessionState.VALID

    def expires_at(self) -> Optional[datetime]:
        approved_at = self.approved_at()
        return approved_at + self.validity if approved_at else None

    def set_approval_session(self) -> datetime:
        approved_at = self.clock()
        self.store.set_item(APPROVED_AT_KEY, to_iso(approved_at))
        logger.info("Approval session started")
        return approved_at

    def clear_session(self) -> None:
        """Forget the approval and the device identifier together."""
        self.store.remove_item(APPROVED_AT_KEY)
        self.device.clear()
        logger.info("Session cleared")


@dataclass
class SessionContext:
    """Session state handed to every view instead of ambient storage reads."""

    device: DeviceIdentityProvider
    session: SessionLifecycleManager

    @classmethod
    def create(
        cls,
        store: LocalStore,
        validity: timedelta = timedelta(days=3),
        clock: Clock = now,
    ) -> "SessionContext":
        device = DeviceIdentityProvider(store)
        return cls(device=device, session=SessionLifecycleManager(store, device, validity, clock))

    def require_valid_session(self) -> Optional[Redirect]:
        """None when the view may render, otherwise where to send the visitor."""
        if self.session.is_session_valid():
            return None
        return TO_ACCESS

    def logout(self) -> Redirect:
        self.session.clear_session()
        return TO_ACCESS
