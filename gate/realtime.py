"""WebSocket client for the per-table change streams."""

import asyncio
import json
import logging
from typing import Callable, Optional
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidStatus

from core.realtime import ChangeEvent

logger = logging.getLogger(__name__)

# Handshake statuses the server uses for a bad, expired or unauthorized token
REJECTED_STATUSES = frozenset({401, 403})


class StreamSubscription:
    """One table stream feeding one callback. unsubscribe() is idempotent."""

    def __init__(self, feed: "WebSocketChangeFeed", table: str, callback: Callable[[ChangeEvent], None]):
        self.feed = feed
        self.table = table
        self.callback = callback
        self.active = True
        self.rejected_status: Optional[int] = None
        self.task: Optional[asyncio.Task] = None

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        if self.task is not None and not self.task.done():
            self.task.cancel()
        self.feed._forget(self)


class WebSocketChangeFeed:
    """
    Change feed backed by the server's WebSocket streams.

    Each subscription holds its own connection and reconnects after
    `reconnect_delay` seconds when the connection drops. A handshake the
    server refuses for the token ends the subscription and is reported to
    `on_rejected`.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], Optional[str]],
        reconnect_delay: float = 2.0,
        connect=websockets.connect,
        on_rejected: Optional[Callable[[StreamSubscription], None]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.reconnect_delay = reconnect_delay
        self.on_rejected = on_rejected
        self._connect = connect
        self._subscriptions: list[StreamSubscription] = []

    def stream_url(self, table: str) -> str:
        token = self.token_provider() or ""
        return f"{self.base_url}/{table}?{urlencode({'token': token})}"

    def subscribe(self, table: str, callback: Callable[[ChangeEvent], None]) -> StreamSubscription:
        """Open a stream for `table`. Must be called with a running event loop."""
        subscription = StreamSubscription(self, table, callback)
        subscription.task = asyncio.get_running_loop().create_task(self._run(subscription))
        self._subscriptions.append(subscription)
        return subscription

    def _dispatch(self, subscription: StreamSubscription, message: str | bytes) -> bool:
        """Decode one message and hand it to the callback. Returns whether it was delivered."""
        try:
            event = ChangeEvent.from_dict(json.loads(message))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Dropping malformed change message on {subscription.table}: {e}")
            return False
        if event.table != subscription.table:
            return False
        try:
            subscription.callback(event)
        except Exception:
            logger.error(f"Change callback failed for {subscription.table}", exc_info=True)
            return False
        return True

    async def _run(self, subscription: StreamSubscription) -> None:
        while subscription.active:
            try:
                async with self._connect(self.stream_url(subscription.table)) as websocket:
                    logger.info(f"Connected to {subscription.table} change stream")
                    async for message in websocket:
                        self._dispatch(subscription, message)
            except ConnectionClosed:
                logger.warning(f"{subscription.table} change stream closed, will reconnect")
            except InvalidStatus as e:
                status = e.response.status_code
                if status in REJECTED_STATUSES:
                    logger.error(f"{subscription.table} change stream refused (HTTP {status})")
                    self._reject(subscription, status)
                    return
                logger.warning(f"{subscription.table} change stream handshake failed: {e}")
            except InvalidHandshake as e:
                logger.warning(f"{subscription.table} change stream handshake failed: {e}")
            except OSError as e:
                logger.warning(f"{subscription.table} change stream unavailable: {e}")

            if subscription.active:
                await asyncio.sleep(self.reconnect_delay)

    def _reject(self, subscription: StreamSubscription, status: int) -> None:
        subscription.active = False
        subscription.rejected_status = status
        self._forget(subscription)
        if self.on_rejected is not None:
            try:
                self.on_rejected(subscription)
            except Exception:
                logger.error(f"Rejection handler failed for {subscription.table}", exc_info=True)

    def _forget(self, subscription: StreamSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()
