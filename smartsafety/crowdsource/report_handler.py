"""
Incident report handler for user submissions
Uploads the photo, geotags the report and inserts it into the repository
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from smartsafety.core.constants import DEFAULT_STATUS
from smartsafety.core.geo_utils import Coordinate, is_valid_coordinate
from smartsafety.incidents.models import Incident
from smartsafety.storage.object_store import build_object_name, guess_content_type

logger = logging.getLogger(__name__)


@dataclass
class PhotoAttachment:
    """Photo picked from the library or taken with the camera."""
    data: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None
    exif: Dict[str, Any] = field(default_factory=dict)

    @property
    def resolved_content_type(self) -> str:
        return self.content_type or guess_content_type(self.filename)


def _exif_degrees(value: Any) -> Optional[float]:
    """Decimal degrees from a number or a (degrees, minutes, seconds) sequence."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        parts = [float(v) for v in value]
        if not parts:
            return None
        if len(parts) >= 3:
            return parts[0] + parts[1] / 60 + parts[2] / 3600
        return parts[0]
    return float(value)


def coordinate_from_exif(exif: Optional[Dict[str, Any]]) -> Optional[Coordinate]:
    """
    Read the GPS position embedded in photo EXIF data.

    Hemisphere references ``S`` and ``W`` make the value negative.

    Returns:
        Coordinate, or None if the tags are missing or invalid
    """
    if not exif:
        return None
    try:
        latitude = _exif_degrees(exif.get("GPSLatitude"))
        longitude = _exif_degrees(exif.get("GPSLongitude"))
    except (TypeError, ValueError) as e:
        logger.warning(f"Unreadable EXIF GPS data: {e}")
        return None

    if latitude is None or longitude is None:
        return None

    if str(exif.get("GPSLatitudeRef", "N")).upper().startswith("S"):
        latitude = -abs(latitude)
    if str(exif.get("GPSLongitudeRef", "E")).upper().startswith("W"):
        longitude = -abs(longitude)

    if not is_valid_coordinate(latitude, longitude):
        return None
    return Coordinate(latitude=latitude, longitude=longitude)


class ReportHandler:
    """
    Handles incident reports from users.

    Submission is all-or-nothing: a failed upload aborts before the
    repository is touched, so no row without its photo is written.
    """

    def __init__(self, repository, object_store, tracker=None):
        """
        Initialize report handler.

        Args:
            repository: IncidentRepository receiving the row
            object_store: ObjectStoreClient receiving the photo
            tracker: LocationTracker used as fallback geotag source
        """
        self.repository = repository
        self.object_store = object_store
        self.tracker = tracker

        self.submitted_count = 0

        logger.info("ReportHandler initialized")

    def resolve_geotag(
        self,
        photo: PhotoAttachment,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Tuple[Optional[float], Optional[float]]:
        """
        Pick the report location.

        Order: photo EXIF GPS, coordinates supplied by the caller, the
        tracker's last position. Returns (None, None) when none is known.
        """
        candidates: Sequence[Optional[Coordinate]] = (
            coordinate_from_exif(photo.exif),
            Coordinate(latitude, longitude) if is_valid_coordinate(latitude, longitude) else None,
            self.tracker.current() if self.tracker is not None else None,
        )
        for coordinate in candidates:
            if coordinate is not None:
                return coordinate.latitude, coordinate.longitude

        logger.warning("No location available for report, submitting without geotag")
        return None, None

    def submit_report(
        self,
        title: str,
        description: str,
        photo: Optional[PhotoAttachment],
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Incident:
        """
        Submit a new incident report.

        Args:
            title: Short title
            description: Free-text description
            photo: Photo to attach (required)
            latitude: Device latitude, used when the photo has no GPS tags
            longitude: Device longitude, used when the photo has no GPS tags

        Returns:
            The stored incident

        Raises:
            ValueError: missing photo or title
            UploadFailure: photo upload failed, nothing was stored
            RepositoryFailure: the insert failed
        """
        if photo is None or not photo.data:
            raise ValueError("Please pick or take an image first")
        if not title or not title.strip():
            raise ValueError("A title is required")

        lat, lon = self.resolve_geotag(photo, latitude, longitude)

        object_name = build_object_name(photo.filename)
        photo_url = self.object_store.upload(
            object_name,
            photo.data,
            content_type=photo.resolved_content_type,
            upsert=True,
        )

        incident = self.repository.insert(
            title=title.strip(),
            description=description or "",
            photo_url=photo_url,
            latitude=lat,
            longitude=lon,
            status=DEFAULT_STATUS,
        )
        self.submitted_count += 1

        logger.info(f"Report submitted: {incident.id} at ({lat}, {lon})")
        return incident
