"""
SmartSafety - Core Utilities
Central configuration, logging, errors and geodesy helpers.
"""

from smartsafety.core.config import settings
from smartsafety.core.constants import (
    EARTH_RADIUS_KM,
    DEFAULT_RADIUS_KM,
    DEFAULT_STATUS,
)
from smartsafety.core.exceptions import (
    SmartSafetyError,
    PermissionDenied,
    LocationUnavailable,
    UploadFailure,
    RepositoryFailure,
    MalformedEvent,
)
from smartsafety.core.geo_utils import (
    Coordinate,
    haversine_distance,
    distance_between,
    is_valid_coordinate,
)

__all__ = [
    "settings",
    "EARTH_RADIUS_KM",
    "DEFAULT_RADIUS_KM",
    "DEFAULT_STATUS",
    "SmartSafetyError",
    "PermissionDenied",
    "LocationUnavailable",
    "UploadFailure",
    "RepositoryFailure",
    "MalformedEvent",
    "Coordinate",
    "haversine_distance",
    "distance_between",
    "is_valid_coordinate",
]
