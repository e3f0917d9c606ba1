"""
Viewer location tracking.

The tracker asks a geolocation capability for permission and a position,
and keeps the latest coordinate as an observable value.
"""

import logging
from enum import Enum
from typing import Optional, Protocol

from smartsafety.core.exceptions import LocationUnavailable, PermissionDenied
from smartsafety.core.geo_utils import Coordinate, is_valid_coordinate
from smartsafety.incidents.observable import ObservableValue

logger = logging.getLogger(__name__)


class TrackerState(str, Enum):
    """Lifecycle of a location tracker."""
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    DENIED = "denied"


class GeolocationProvider(Protocol):
    """Device geolocation capability."""

    async def request_permission(self) -> bool:
        ...

    async def get_current_position(self) -> Coordinate:
        ...


class StaticGeolocation:
    """Geolocation capability returning a fixed position."""

    def __init__(self, coordinate: Optional[Coordinate] = None, granted: bool = True):
        self.coordinate = coordinate
        self.granted = granted
        self.permission_requests = 0

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.granted

    async def get_current_position(self) -> Coordinate:
        if self.coordinate is None:
            raise LocationUnavailable("no position configured")
        return self.coordinate


class LocationTracker:
    """
    Resolves and holds the viewer's current coordinate.

    State machine: UNRESOLVED -> RESOLVING -> RESOLVED, or -> DENIED when the
    capability is refused. DENIED is terminal for this tracker; a new tracker
    is needed once permission is granted again.
    """

    def __init__(self, provider: GeolocationProvider):
        self.provider = provider
        self.position: ObservableValue[Optional[Coordinate]] = ObservableValue(None)
        self._state = TrackerState.UNRESOLVED

    @property
    def state(self) -> TrackerState:
        return self._state

    def current(self) -> Optional[Coordinate]:
        """Last resolved coordinate, without triggering acquisition."""
        return self.position.value

    async def resolve_current(self) -> Coordinate:
        """
        Request permission and the current position.

        Returns:
            The resolved coordinate

        Raises:
            PermissionDenied: location access refused (now or earlier)
            LocationUnavailable: no position fix; the previous value is kept
        """
        if self._state == TrackerState.DENIED:
            raise PermissionDenied("location")

        self._state = TrackerState.RESOLVING

        try:
            granted = await self.provider.request_permission()
        except Exception as e:
            self._restore_state()
            logger.error(f"Location permission request failed: {e}")
            raise LocationUnavailable(str(e)) from e

        if not granted:
            self._state = TrackerState.DENIED
            logger.warning("Location permission denied")
            raise PermissionDenied("location")

        try:
            coordinate = await self.provider.get_current_position()
        except LocationUnavailable:
            self._restore_state()
            raise
        except Exception as e:
            self._restore_state()
            logger.error(f"Failed to get current position: {e}")
            raise LocationUnavailable(str(e)) from e

        if not is_valid_coordinate(coordinate.latitude, coordinate.longitude):
            self._restore_state()
            raise LocationUnavailable(f"invalid position {coordinate}")

        self._state = TrackerState.RESOLVED
        self.position.set(coordinate)
        logger.info(f"Location resolved: ({coordinate.latitude:.5f}, {coordinate.longitude:.5f})")
        return coordinate

    def _restore_state(self) -> None:
        if self.position.value is None:
            self._state = TrackerState.UNRESOLVED
        else:
            self._state = TrackerState.RESOLVED
