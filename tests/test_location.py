"""
Tests for the location tracker
"""
import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

import sys
sys.path.insert(0, '.')

from smartsafety.core.exceptions import LocationUnavailable, PermissionDenied
from smartsafety.core.geo_utils import Coordinate
from smartsafety.location.tracker import LocationTracker, StaticGeolocation, TrackerState


class RecordingProvider:
    """Provider that records the tracker state while the fix is in flight."""

    def __init__(self, coordinate, error=None):
        self.coordinate = coordinate
        self.error = error
        self.tracker = None
        self.seen_states = []

    async def request_permission(self):
        return True

    async def get_current_position(self):
        self.seen_states.append(self.tracker.state)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.coordinate


class TestLocationTracker:
    """Test suite for LocationTracker."""

    def test_resolve_current(self):
        """Test the happy path publishes the position."""
        provider = StaticGeolocation(Coordinate(40.0, -75.0))
        tracker = LocationTracker(provider)
        seen = []
        tracker.position.subscribe(seen.append)

        coordinate = asyncio.run(tracker.resolve_current())

        assert coordinate == Coordinate(40.0, -75.0)
        assert tracker.state == TrackerState.RESOLVED
        assert tracker.current() == coordinate
        assert seen == [coordinate]

    def test_resolving_state_while_in_flight(self):
        """Test the tracker reports RESOLVING during acquisition."""
        provider = RecordingProvider(Coordinate(1.0, 2.0))
        tracker = LocationTracker(provider)
        provider.tracker = tracker

        asyncio.run(tracker.resolve_current())

        assert provider.seen_states == [TrackerState.RESOLVING]
        assert tracker.state == TrackerState.RESOLVED

    def test_permission_denied_is_terminal(self):
        """Test denial sets DENIED and is not asked again."""
        provider = StaticGeolocation(Coordinate(40.0, -75.0), granted=False)
        tracker = LocationTracker(provider)

        with pytest.raises(PermissionDenied) as exc_info:
            asyncio.run(tracker.resolve_current())
        assert tracker.state == TrackerState.DENIED
        assert exc_info.value.user_message == "Enable location access to continue"

        provider.granted = True
        with pytest.raises(PermissionDenied):
            asyncio.run(tracker.resolve_current())

        assert provider.permission_requests == 1
        assert tracker.current() is None

    def test_unavailable_without_fix(self):
        """Test a missing fix raises LocationUnavailable and stays unresolved."""
        tracker = LocationTracker(StaticGeolocation(coordinate=None))

        with pytest.raises(LocationUnavailable):
            asyncio.run(tracker.resolve_current())

        assert tracker.state == TrackerState.UNRESOLVED
        assert tracker.current() is None

    def test_unavailable_keeps_previous_position(self):
        """Test a failed refresh keeps the last known coordinate."""
        provider = StaticGeolocation(Coordinate(40.0, -75.0))
        tracker = LocationTracker(provider)
        asyncio.run(tracker.resolve_current())

        provider.coordinate = None
        with pytest.raises(LocationUnavailable):
            asyncio.run(tracker.resolve_current())

        assert tracker.state == TrackerState.RESOLVED
        assert tracker.current() == Coordinate(40.0, -75.0)

    def test_provider_error_wrapped(self):
        """Test unexpected provider errors surface as LocationUnavailable."""
        provider = RecordingProvider(None, error=OSError("GPS hardware offline"))
        tracker = LocationTracker(provider)
        provider.tracker = tracker

        with pytest.raises(LocationUnavailable) as exc_info:
            asyncio.run(tracker.resolve_current())

        assert isinstance(exc_info.value.__cause__, OSError)
        assert tracker.state == TrackerState.UNRESOLVED

    def test_permission_request_error(self):
        """Test a failing permission prompt does not leave the tracker resolving."""
        provider = MagicMock()
        provider.request_permission = AsyncMock(side_effect=RuntimeError("prompt unavailable"))
        tracker = LocationTracker(provider)

        with pytest.raises(LocationUnavailable) as exc_info:
            asyncio.run(tracker.resolve_current())

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert tracker.state == TrackerState.UNRESOLVED
        provider.get_current_position.assert_not_called()

    def test_invalid_fix_rejected(self):
        """Test an out-of-range fix is not published."""
        tracker = LocationTracker(StaticGeolocation(Coordinate(123.0, 0.0)))

        with pytest.raises(LocationUnavailable):
            asyncio.run(tracker.resolve_current())

        assert tracker.current() is None

    def test_current_does_not_acquire(self):
        """Test current() never asks the provider."""
        provider = StaticGeolocation(Coordinate(40.0, -75.0))
        tracker = LocationTracker(provider)

        assert tracker.current() is None
        assert provider.permission_requests == 0
        assert tracker.state == TrackerState.UNRESOLVED
