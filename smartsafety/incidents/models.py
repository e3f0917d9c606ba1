"""
Incident records and change-feed events.

Records are immutable; the store replaces them wholesale on every change.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from smartsafety.core.constants import DEFAULT_STATUS
from smartsafety.core.exceptions import MalformedEvent
from smartsafety.core.geo_utils import Coordinate, is_valid_coordinate


class IncidentStatus(str, Enum):
    """Known incident statuses. The stored value is an open string set."""
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class ChangeKind(str, Enum):
    """Kind of row-level change delivered by the change feed."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or datetime into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True)
class Incident:
    """
    A user-submitted safety report.

    Coordinates stay ``None`` until geotagging completes; such incidents are
    listed in the feed but never placed on the map.
    """
    id: str
    title: str
    description: str
    photo_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: str = DEFAULT_STATUS
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        # naive timestamps are UTC
        object.__setattr__(self, "created_at", parse_timestamp(self.created_at))
        object.__setattr__(self, "updated_at", parse_timestamp(self.updated_at))

    @property
    def has_location(self) -> bool:
        return is_valid_coordinate(self.latitude, self.longitude)

    @property
    def coordinate(self) -> Optional[Coordinate]:
        if not self.has_location:
            return None
        return Coordinate(latitude=float(self.latitude), longitude=float(self.longitude))

    @property
    def display_title(self) -> str:
        return f"{self.title} ({self.status})"

    @property
    def location_label(self) -> str:
        if not self.has_location:
            return "Location: N/A"
        return f"Location: {self.latitude:.4f}, {self.longitude:.4f}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Incident":
        """
        Build an incident from a repository row.

        Raises:
            KeyError: if ``id`` is missing
            ValueError: if a coordinate or timestamp cannot be parsed
        """
        incident_id = data["id"]
        if incident_id is None or str(incident_id) == "":
            raise ValueError("empty incident id")

        return cls(
            id=str(incident_id),
            title=data.get("title") or "",
            description=data.get("description") or "",
            photo_url=data.get("photo_url") or None,
            latitude=_optional_float(data.get("latitude")),
            longitude=_optional_float(data.get("longitude")),
            status=data.get("status") or DEFAULT_STATUS,
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )


@dataclass(frozen=True)
class ChangeEvent:
    """One insert/update/delete notification for the incidents table."""
    kind: ChangeKind
    record: Incident

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ChangeEvent":
        """
        Parse a raw change-feed payload.

        Accepts the realtime shape ``{"eventType", "new", "old"}`` and the
        short shape ``{"kind", "record"}``.

        Raises:
            MalformedEvent: when the kind or the record id is missing or invalid
        """
        if not isinstance(payload, Mapping):
            raise MalformedEvent("payload is not a mapping")

        raw_kind = payload.get("kind") or payload.get("eventType") or payload.get("type")
        if not raw_kind:
            raise MalformedEvent("missing event kind", payload)
        try:
            kind = ChangeKind(str(getattr(raw_kind, "value", raw_kind)).lower())
        except ValueError:
            raise MalformedEvent(f"unknown event kind {raw_kind!r}", payload)

        row = payload.get("record") or payload.get("new")
        if kind == ChangeKind.DELETE and not row:
            row = payload.get("old")
        if not row or not isinstance(row, Mapping):
            raise MalformedEvent("missing record", payload)

        try:
            record = Incident.from_dict(row)
        except KeyError:
            raise MalformedEvent("missing id", payload)
        except (TypeError, ValueError) as e:
            raise MalformedEvent(f"invalid record: {e}", payload)

        return cls(kind=kind, record=record)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize in the realtime shape delivered to subscribers."""
        row = self.record.to_dict()
        return {
            "eventType": self.kind.value.upper(),
            "new": row if self.kind != ChangeKind.DELETE else {},
            "old": row if self.kind == ChangeKind.DELETE else {},
        }
