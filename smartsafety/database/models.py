"""
SQLAlchemy models for SmartSafety
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Float, String, Text, DateTime, Index
from sqlalchemy.orm import declarative_base

from smartsafety.core.constants import DEFAULT_STATUS, INCIDENTS_TABLE
from smartsafety.incidents.models import Incident

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IncidentRecord(Base):
    """
    Safety incident reported by a user.

    Coordinates are nullable: a report can be stored before geotagging.
    """
    __tablename__ = INCIDENTS_TABLE

    id = Column(String(36), primary_key=True, default=_new_id)

    # Report details
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    photo_url = Column(String(500))

    # Location
    latitude = Column(Float)
    longitude = Column(Float)

    # Review lifecycle
    status = Column(String(32), nullable=False, default=DEFAULT_STATUS)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_incident_created_at", created_at),
        Index("idx_incident_status", status),
    )

    def __repr__(self):
        return f"<IncidentRecord({self.id}, status={self.status}, lat={self.latitude})>"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "photo_url": self.photo_url,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_incident(self) -> Incident:
        """Convert to the immutable domain record."""
        return Incident.from_dict(self.to_dict())
