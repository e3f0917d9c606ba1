"""
Keeps an IncidentStore consistent with the repository and its change feed.

Ordering: the feed subscription is opened before the bulk fetch starts, so
events published while the fetch is in flight wait in the subscription
queue and are applied after the load instead of being overwritten by it.
"""

import asyncio
import logging
from typing import Optional

from smartsafety.core.exceptions import RepositoryFailure
from smartsafety.incidents.store import IncidentStore
from smartsafety.realtime.change_feed import ChangeFeed, Subscription

logger = logging.getLogger(__name__)


class IncidentSync:
    """
    Scoped live synchronization of one store.

    Usage:
        async with IncidentSync(repository, feed, store) as sync:
            ...

    ``close`` releases the subscription exactly once, also when it runs while
    ``start`` is still waiting for the bulk fetch; a fetch that completes
    after teardown never touches the store.
    """

    def __init__(
        self,
        repository,
        feed: ChangeFeed,
        store: Optional[IncidentStore] = None,
    ):
        """
        Initialize the sync.

        Args:
            repository: Object with a blocking ``fetch_all()`` returning incidents
                newest first
            feed: Change feed of the incidents table
            store: Store to keep live (a new one by default)
        """
        self.repository = repository
        self.feed = feed
        self.store = store if store is not None else IncidentStore()

        self.last_error: Optional[RepositoryFailure] = None
        self._subscription: Optional[Subscription] = None
        self._consumer: Optional[asyncio.Task] = None
        self._started = False
        self._closed = False

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Subscribe, bulk load, then apply feed events one at a time."""
        if self._started:
            raise RuntimeError("IncidentSync already started")
        if self._closed:
            raise RuntimeError("IncidentSync is closed")
        self._started = True

        self._subscription = self.feed.subscribe()

        try:
            records = await asyncio.to_thread(self.repository.fetch_all)
        except RepositoryFailure as e:
            self.last_error = e
            records = None
            logger.error(f"Bulk load failed, keeping current incidents: {e}")
        except asyncio.CancelledError:
            self._subscription.unsubscribe()
            raise
        except Exception as e:
            self.last_error = RepositoryFailure(f"{type(e).__name__}: {e}")
            self.last_error.__cause__ = e
            records = None
            logger.exception(f"Bulk load failed, keeping current incidents: {e}")

        if self._closed:
            logger.debug("Sync closed during bulk load, result discarded")
            return

        if records is not None:
            self.store.bulk_load(records)

        self._consumer = asyncio.create_task(self._consume(self._subscription))

    async def _consume(self, subscription: Subscription) -> None:
        async for payload in subscription:
            self.store.apply_payload(payload)

    async def settle(self) -> None:
        """Wait until every payload already received has been applied."""
        await asyncio.sleep(0)
        while (
            self.running
            and self._subscription is not None
            and self._subscription.pending
        ):
            await asyncio.sleep(0)

    async def close(self) -> None:
        """Release the subscription and stop consuming. Idempotent."""
        if self._closed:
            return
        self._closed = True

        if self._subscription is not None:
            self._subscription.unsubscribe()

        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None

        logger.debug("Incident sync closed")

    async def __aenter__(self) -> "IncidentSync":
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
