"""
SmartSafety - Geospatial Utilities
Great-circle calculations on a spherical Earth.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from smartsafety.core.constants import EARTH_RADIUS_KM


@dataclass(frozen=True)
class Coordinate:
    """Geographic point with latitude and longitude in decimal degrees."""
    latitude: float
    longitude: float

    def to_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


def is_valid_coordinate(latitude: Optional[float], longitude: Optional[float]) -> bool:
    """Check that both values are present, finite and within WGS84 ranges."""
    if latitude is None or longitude is None:
        return False
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        return False
    if math.isnan(lat) or math.isnan(lon):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates in decimal degrees
        lat2, lon2: Second point coordinates in decimal degrees

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_between(origin: Coordinate, target: Coordinate) -> float:
    """Haversine distance in kilometers between two coordinates."""
    return haversine_distance(
        origin.latitude, origin.longitude,
        target.latitude, target.longitude,
    )


def destination_point(
    lat: float, lon: float,
    distance_km: float,
    bearing_degrees: float
) -> Tuple[float, float]:
    """
    Calculate destination point given start, distance, and bearing.

    Args:
        lat, lon: Start point in decimal degrees
        distance_km: Distance to travel
        bearing_degrees: Initial bearing (0=North, 90=East)

    Returns:
        (latitude, longitude) of the destination, longitude normalised to [-180, 180)
    """
    lat_rad = math.radians(lat)
    lon_rad = math.radians(lon)
    bearing_rad = math.radians(bearing_degrees)
    angular = distance_km / EARTH_RADIUS_KM

    dest_lat = math.asin(
        math.sin(lat_rad) * math.cos(angular) +
        math.cos(lat_rad) * math.sin(angular) * math.cos(bearing_rad)
    )
    dest_lon = lon_rad + math.atan2(
        math.sin(bearing_rad) * math.sin(angular) * math.cos(lat_rad),
        math.cos(angular) - math.sin(lat_rad) * math.sin(dest_lat)
    )

    dest_lon_deg = (math.degrees(dest_lon) + 540) % 360 - 180
    return (math.degrees(dest_lat), dest_lon_deg)
