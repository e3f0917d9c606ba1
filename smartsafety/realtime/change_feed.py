"""
In-process change-notification feed for the incidents table.

Writers call ``publish`` from any thread; each subscriber receives the
payloads on its own event loop, in publish order, through an async iterator.
"""

import asyncio
import logging
import threading
from typing import Any, Dict, List, Mapping

from smartsafety.core.constants import INCIDENTS_TABLE

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """
    Handle on a feed subscription.

    Payloads published after ``subscribe`` queue up until consumed, so a
    subscriber can open the subscription before loading the table and replay
    whatever arrived meanwhile. ``unsubscribe`` must run on the subscriber's
    loop; it is idempotent.
    """

    def __init__(self, feed: "ChangeFeed", loop: asyncio.AbstractEventLoop):
        self._feed = feed
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Payloads received but not consumed yet."""
        return max(self._queue.qsize() - (1 if self._closed else 0), 0)

    def _deliver(self, payload: Mapping[str, Any]) -> None:
        if self._closed:
            return
        try:
            self._loop.call_soon_threadsafe(self._put, payload)
        except RuntimeError:
            logger.debug("Subscriber loop closed, payload dropped")

    def _put(self, payload: Mapping[str, Any]) -> None:
        if not self._closed:
            self._queue.put_nowait(payload)

    async def get(self) -> Mapping[str, Any]:
        """Wait for the next payload."""
        payload = await self.__anext__()
        return payload

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Mapping[str, Any]:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            raise StopAsyncIteration
        return item

    def unsubscribe(self) -> bool:
        """
        Stop receiving payloads.

        Returns:
            True on the first call, False afterwards
        """
        if self._closed:
            return False
        self._closed = True
        self._feed._remove(self)
        self._queue.put_nowait(_CLOSED)
        logger.debug(f"Unsubscribed from {self._feed.table} feed")
        return True


class ChangeFeed:
    """Broadcasts row-level change payloads to every open subscription."""

    def __init__(self, table: str = INCIDENTS_TABLE):
        self.table = table
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        """Open a subscription bound to the running event loop."""
        subscription = Subscription(self, asyncio.get_running_loop())
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug(f"Subscribed to {self.table} feed")
        return subscription

    def publish(self, payload: Mapping[str, Any]) -> int:
        """
        Deliver a payload to every subscriber. Safe to call from any thread.

        Returns:
            Number of subscribers the payload was delivered to
        """
        message: Dict[str, Any] = dict(payload)
        message.setdefault("table", self.table)

        with self._lock:
            subscriptions = list(self._subscriptions)

        for subscription in subscriptions:
            subscription._deliver(message)
        return len(subscriptions)

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
