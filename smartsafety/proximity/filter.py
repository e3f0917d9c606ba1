"""
Radius-based selection of incidents around a reference coordinate.

Distances use the haversine great-circle formula on a sphere of radius
6371 km, which stays correct near the poles and across the antimeridian.
"""

import logging
import math
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from smartsafety.core.constants import BOUNDARY_TOLERANCE_KM, DEFAULT_RADIUS_KM
from smartsafety.core.geo_utils import Coordinate, distance_between
from smartsafety.incidents.models import Incident
from smartsafety.incidents.observable import ObservableValue
from smartsafety.incidents.store import IncidentStore

logger = logging.getLogger(__name__)


def _check_radius(radius_km: float) -> None:
    if math.isnan(radius_km) or radius_km < 0:
        raise ValueError(f"radius_km must be a non-negative number, got {radius_km}")


def incident_distance(reference: Coordinate, incident: Incident) -> Optional[float]:
    """Distance in km from the reference, or None if the incident has no location."""
    target = incident.coordinate
    if target is None:
        return None
    return distance_between(reference, target)


def filter_nearby(
    reference: Coordinate,
    radius_km: float,
    incidents: Iterable[Incident],
    tolerance_km: float = BOUNDARY_TOLERANCE_KM,
) -> List[Incident]:
    """
    Select incidents within ``radius_km`` of ``reference``.

    The boundary is inclusive, incidents without a coordinate are skipped
    and the input order is preserved.

    Args:
        reference: Viewer position
        radius_km: Radius in kilometers (``math.inf`` keeps every located incident)
        incidents: Candidate incidents
        tolerance_km: Slack added to the boundary to absorb rounding

    Returns:
        Matching incidents in input order
    """
    _check_radius(radius_km)
    limit = radius_km + tolerance_km

    nearby = []
    for incident in incidents:
        distance = incident_distance(reference, incident)
        if distance is not None and distance <= limit:
            nearby.append(incident)
    return nearby


def sort_by_distance(
    reference: Coordinate,
    incidents: Iterable[Incident],
) -> List[Tuple[Incident, float]]:
    """Pair located incidents with their distance, nearest first."""
    pairs = []
    for incident in incidents:
        distance = incident_distance(reference, incident)
        if distance is not None:
            pairs.append((incident, distance))
    pairs.sort(key=lambda pair: pair[1])
    return pairs


class ProximityFilter:
    """Proximity filter bound to a default radius."""

    def __init__(
        self,
        radius_km: float = DEFAULT_RADIUS_KM,
        tolerance_km: float = BOUNDARY_TOLERANCE_KM,
    ):
        _check_radius(radius_km)
        self.radius_km = radius_km
        self.tolerance_km = tolerance_km

    def filter(
        self,
        reference: Coordinate,
        incidents: Iterable[Incident],
        radius_km: Optional[float] = None,
    ) -> List[Incident]:
        radius = self.radius_km if radius_km is None else radius_km
        return filter_nearby(reference, radius, incidents, self.tolerance_km)


class NearbyIncidents:
    """
    Derived view of the incidents near the viewer.

    Recomputed whenever the store publishes a snapshot or the reference
    position changes. Empty while no position is known.
    """

    def __init__(
        self,
        store: IncidentStore,
        position: ObservableValue[Optional[Coordinate]],
        proximity: Optional[ProximityFilter] = None,
    ):
        self.store = store
        self.position = position
        self.proximity = proximity if proximity is not None else ProximityFilter()
        self.value: ObservableValue[Sequence[Incident]] = ObservableValue(())

        self._unsubscribers: List[Callable[[], None]] = [
            store.subscribe(lambda _snapshot: self.recompute()),
            position.subscribe(lambda _position: self.recompute()),
        ]
        self.recompute()

    @property
    def incidents(self) -> Sequence[Incident]:
        return self.value.value

    def recompute(self) -> None:
        reference = self.position.value
        if reference is None:
            nearby: Tuple[Incident, ...] = ()
        else:
            nearby = tuple(self.proximity.filter(reference, self.store.snapshot()))
            logger.debug(f"{len(nearby)} incidents within {self.proximity.radius_km:g} km")
        self.value.set(nearby)

    def subscribe(self, listener: Callable[[Sequence[Incident]], None]) -> Callable[[], None]:
        return self.value.subscribe(listener)

    def close(self) -> None:
        """Detach from the store and the position."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
