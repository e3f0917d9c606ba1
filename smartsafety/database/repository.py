"""
Incident repository backed by SQLAlchemy.

Every write is announced on the attached change feed so that live views
can merge it without refetching the table.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from smartsafety.core.constants import DEFAULT_STATUS
from smartsafety.core.exceptions import RepositoryFailure
from smartsafety.incidents.models import ChangeEvent, ChangeKind, Incident
from smartsafety.realtime.change_feed import ChangeFeed

from .connection import DatabaseConnection
from .models import IncidentRecord

logger = logging.getLogger(__name__)


class IncidentRepository:
    """Queryable incident table: ordered fetch, insert, status update, delete."""

    def __init__(self, db: DatabaseConnection, feed: Optional[ChangeFeed] = None):
        self.db = db
        self.feed = feed

    def fetch_all(self) -> List[Incident]:
        """
        Fetch every incident, newest first.

        Raises:
            RepositoryFailure: on any database error
        """
        try:
            with self.db.get_session() as session:
                rows = session.execute(
                    select(IncidentRecord).order_by(IncidentRecord.created_at.desc())
                ).scalars().all()
                incidents = [row.to_incident() for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch incidents: {e}")
            raise RepositoryFailure(str(e)) from e

        logger.debug(f"Fetched {len(incidents)} incidents")
        return incidents

    def get(self, incident_id: str) -> Optional[Incident]:
        """Get one incident by id."""
        try:
            with self.db.get_session() as session:
                row = session.get(IncidentRecord, incident_id)
                return row.to_incident() if row else None
        except SQLAlchemyError as e:
            raise RepositoryFailure(str(e)) from e

    def insert(
        self,
        title: str,
        description: str,
        photo_url: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        status: str = DEFAULT_STATUS,
    ) -> Incident:
        """
        Insert one incident; id and ``created_at`` are assigned here.

        Returns:
            The stored incident

        Raises:
            RepositoryFailure: on any database error
        """
        try:
            with self.db.get_session() as session:
                row = IncidentRecord(
                    title=title,
                    description=description,
                    photo_url=photo_url,
                    latitude=latitude,
                    longitude=longitude,
                    status=status,
                )
                session.add(row)
                session.flush()
                incident = row.to_incident()
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert incident: {e}")
            raise RepositoryFailure(str(e)) from e

        logger.info(f"Incident inserted: {incident.id}")
        self._announce(ChangeKind.INSERT, incident)
        return incident

    def update_status(self, incident_id: str, status: str) -> Optional[Incident]:
        """
        Change the review status of an incident.

        Returns:
            The updated incident, or None if the id is unknown
        """
        try:
            with self.db.get_session() as session:
                row = session.get(IncidentRecord, incident_id)
                if row is None:
                    return None
                old_status = row.status
                row.status = status
                row.updated_at = datetime.now(timezone.utc)
                session.flush()
                incident = row.to_incident()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update incident {incident_id}: {e}")
            raise RepositoryFailure(str(e)) from e

        logger.info(f"Incident {incident_id} status: {old_status} -> {status}")
        self._announce(ChangeKind.UPDATE, incident)
        return incident

    def delete(self, incident_id: str) -> bool:
        """
        Delete an incident.

        Returns:
            True if a row was deleted
        """
        try:
            with self.db.get_session() as session:
                row = session.get(IncidentRecord, incident_id)
                if row is None:
                    return False
                incident = row.to_incident()
                session.delete(row)
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete incident {incident_id}: {e}")
            raise RepositoryFailure(str(e)) from e

        logger.info(f"Incident deleted: {incident_id}")
        self._announce(ChangeKind.DELETE, incident)
        return True

    def _announce(self, kind: ChangeKind, incident: Incident) -> None:
        if self.feed is not None:
            self.feed.publish(ChangeEvent(kind=kind, record=incident).to_payload())
