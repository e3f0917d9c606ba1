"""
SmartSafety - Location Module
"""

from smartsafety.location.tracker import (
    LocationTracker,
    TrackerState,
    GeolocationProvider,
    StaticGeolocation,
)

__all__ = [
    "LocationTracker",
    "TrackerState",
    "GeolocationProvider",
    "StaticGeolocation",
]
