"""
Live nearby-incidents session: the state behind the map view.

Resolves the viewer's position, keeps the incident store live and exposes
the incidents within the configured radius.
"""

import logging
from typing import Optional, Sequence

from smartsafety.core.config import settings
from smartsafety.core.exceptions import SmartSafetyError
from smartsafety.incidents.models import Incident
from smartsafety.incidents.store import IncidentStore
from smartsafety.location.tracker import LocationTracker
from smartsafety.proximity.filter import NearbyIncidents, ProximityFilter
from smartsafety.realtime.change_feed import ChangeFeed
from smartsafety.realtime.sync import IncidentSync

logger = logging.getLogger(__name__)


class LiveMapSession:
    """
    Location + live store + proximity view, with a single user-facing
    error message.

    A location permission denial stops the session before any incident is
    loaded, matching the map view that cannot be centred without a position.
    """

    def __init__(
        self,
        tracker: LocationTracker,
        repository,
        feed: ChangeFeed,
        radius_km: Optional[float] = None,
        store: Optional[IncidentStore] = None,
    ):
        self.tracker = tracker
        if store is None:
            store = IncidentStore(stale_guard=settings.stale_event_guard)
        self.store = store
        self.sync = IncidentSync(repository, feed, self.store)
        self.proximity = ProximityFilter(
            settings.proximity_radius_km if radius_km is None else radius_km
        )
        self.nearby = NearbyIncidents(self.store, tracker.position, self.proximity)
        self.message: Optional[str] = None

    @property
    def radius_km(self) -> float:
        return self.proximity.radius_km

    @property
    def nearby_incidents(self) -> Sequence[Incident]:
        return self.nearby.incidents

    def feed(self) -> Sequence[Incident]:
        """Every known incident, newest first."""
        return self.store.ordered()

    async def start(self) -> bool:
        """
        Resolve the position and start syncing.

        Returns:
            False if the session could not start; ``message`` says why
        """
        try:
            await self.tracker.resolve_current()
        except SmartSafetyError as e:
            self.message = e.user_message
            logger.warning(f"Map session not started: {e}")
            return False

        await self.sync.start()
        if self.sync.last_error is not None:
            self.message = self.sync.last_error.user_message
        return True

    async def refresh_location(self) -> bool:
        """Re-resolve the position; the nearby view follows automatically."""
        try:
            await self.tracker.resolve_current()
        except SmartSafetyError as e:
            self.message = e.user_message
            return False
        return True

    async def close(self) -> None:
        self.nearby.close()
        await self.sync.close()

    async def __aenter__(self) -> "LiveMapSession":
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
