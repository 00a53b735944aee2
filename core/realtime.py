"""
In-process change feed.

Services publish insert/update/delete events per table after a successful
commit; subscribers (WebSocket streams, in-process views) receive them through
callbacks until they unsubscribe.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Callable, Optional

from core.utils.datetime import now

logger = logging.getLogger(__name__)


class ChangeType(str, PyEnum):
    """Kind of row change."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """A single row change with before/after payloads."""

    table: str
    type: ChangeType
    new: Optional[dict[str, Any]] = None
    old: Optional[dict[str, Any]] = None
    commit_timestamp: datetime = field(default_factory=now)

    @property
    def record(self) -> Optional[dict[str, Any]]:
        """The row this event is about (after image, or before image for deletes)."""
        return self.new if self.new is not None else self.old

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "type": self.type.value,
            "new": self.new,
            "old": self.old,
            "commit_timestamp": self.commit_timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChangeEvent":
        timestamp = data.get("commit_timestamp")
        return cls(
            table=data["table"],
            type=ChangeType(data["type"]),
            new=data.get("new"),
            old=data.get("old"),
            commit_timestamp=datetime.fromisoformat(timestamp) if timestamp else now(),
        )


ChangeCallback = Callable[[ChangeEvent], None]


class Subscription:
    """Handle returned by subscribe(); release it with unsubscribe()."""

    def __init__(self, feed: "ChangeFeed", table: str, callback: ChangeCallback):
        self._feed = feed
        self.table = table
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._feed._remove(self)


class ChangeFeed:
    """Publish/subscribe feed keyed by table name."""

    def __init__(self):
        self._subscribers: dict[str, list[Subscription]] = {}

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        subscription = Subscription(self, table, callback)
        self._subscribers.setdefault(table, []).append(subscription)
        logger.debug(f"Subscribed to {table} changes ({self.subscriber_count(table)} active)")
        return subscription

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver an event to every current subscriber of its table.

        Returns:
            Number of subscribers the event was delivered to
        """
        delivered = 0
        # copy: callbacks may unsubscribe while we iterate
        for subscription in list(self._subscribers.get(event.table, [])):
            if not subscription.active:
                continue
            try:
                subscription.callback(event)
                delivered += 1
            except Exception:
                logger.error(
                    f"Change subscriber failed for {event.table} {event.type.value}",
                    exc_info=True,
                )
        return delivered

    def subscriber_count(self, table: str) -> int:
        return len(self._subscribers.get(table, []))

    def _remove(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.table, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
        logger.debug(f"Unsubscribed from {subscription.table} changes")
