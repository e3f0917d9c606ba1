"""
Pytest configuration and fixtures
"""
import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from smartsafety.core.geo_utils import Coordinate
from smartsafety.database.connection import DatabaseConnection
from smartsafety.database.models import IncidentRecord
from smartsafety.incidents.models import Incident


class FakeRepository:
    """In-memory repository with a blocking ``fetch_all`` like the real one."""

    def __init__(self, records=None, on_fetch=None, error=None, gate=None):
        self.records = list(records or [])
        self.on_fetch = on_fetch
        self.error = error
        self.gate = gate
        self.fetch_calls = 0

    def fetch_all(self):
        self.fetch_calls += 1
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.on_fetch is not None:
            self.on_fetch()
        if self.error is not None:
            raise self.error
        return list(self.records)


@pytest.fixture
def make_incident():
    """Factory for incident records."""
    def _make(incident_id="a", latitude=None, longitude=None, **kwargs):
        kwargs.setdefault("title", f"Incident {incident_id}")
        kwargs.setdefault("description", "Observed near the crossing")
        return Incident(id=incident_id, latitude=latitude, longitude=longitude, **kwargs)
    return _make


@pytest.fixture
def reference_point():
    """Viewer position used across proximity tests."""
    return Coordinate(latitude=40.0, longitude=-75.0)


@pytest.fixture
def sample_rows():
    """Repository rows, oldest first."""
    return [
        {
            "id": "far",
            "title": "Flooded underpass",
            "description": "Water over the road",
            "latitude": 40.5,
            "longitude": -75.0,
            "status": "pending",
            "created_at": datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc),
        },
        {
            "id": "near",
            "title": "Broken streetlight",
            "description": "Dark corner at night",
            "latitude": 40.001,
            "longitude": -75.001,
            "status": "pending",
            "created_at": datetime(2026, 1, 2, 8, 0, tzinfo=timezone.utc),
        },
        {
            "id": "untagged",
            "title": "Aggressive dog",
            "description": "Loose dog in the park",
            "latitude": None,
            "longitude": None,
            "status": "under_review",
            "created_at": datetime(2026, 1, 3, 8, 0, tzinfo=timezone.utc),
        },
    ]


@pytest.fixture
def memory_db():
    """In-memory SQLite database with the schema created."""
    db = DatabaseConnection(database_url="sqlite://")
    db.create_tables()
    yield db
    db.close()


@pytest.fixture
def seeded_db(memory_db, sample_rows):
    """In-memory database holding ``sample_rows``."""
    with memory_db.get_session() as session:
        for row in sample_rows:
            session.add(IncidentRecord(**row))
    return memory_db
