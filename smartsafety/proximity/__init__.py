"""
SmartSafety - Proximity Module
Haversine radius filtering of incidents.
"""

from smartsafety.proximity.filter import (
    ProximityFilter,
    NearbyIncidents,
    filter_nearby,
    incident_distance,
    sort_by_distance,
)

__all__ = [
    "ProximityFilter",
    "NearbyIncidents",
    "filter_nearby",
    "incident_distance",
    "sort_by_distance",
]
