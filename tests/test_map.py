"""
Tests for map rendering and the map CLI
"""
from datetime import datetime, timezone

import sys
sys.path.insert(0, '.')

import folium

from smartsafety.core.geo_utils import Coordinate
from smartsafety.visualization.map_generator import (
    build_popup_html,
    create_incident_map,
    generate_nearby_map,
    get_status_color,
)

import generate_map


class TestMapGenerator:
    """Test suite for the folium map builder."""

    def test_status_colors(self):
        """Test known statuses map to colors and others fall back to gray."""
        assert get_status_color("pending") != "gray"
        assert get_status_color("something-else") == "gray"

    def test_popup_escapes_text(self, make_incident):
        """Test user text is HTML-escaped in popups."""
        incident = make_incident(
            "a", 40.0, -75.0,
            title="<script>alert(1)</script>",
            photo_url="https://storage.test/1.jpg",
            created_at=datetime(2026, 1, 2, 8, 30, tzinfo=timezone.utc),
        )

        popup = build_popup_html(incident)

        assert "<script>" not in popup
        assert "&lt;script&gt;" in popup
        assert 'src="https://storage.test/1.jpg"' in popup
        assert "2026-01-02 08:30 UTC" in popup

    def test_create_incident_map(self, make_incident, reference_point):
        """Test the map holds the radius circle, the viewer and one marker per located incident."""
        incidents = [
            make_incident("a", 40.001, -75.0),
            make_incident("b", 40.002, -75.001, status="resolved"),
            make_incident("untagged"),
        ]

        incident_map = create_incident_map(reference_point, incidents, radius_km=1.0, title="Nearby")

        children = list(incident_map._children.values())
        markers = [c for c in children if type(c) is folium.Marker]
        circles = [c for c in children if type(c) is folium.Circle]
        assert len(markers) == 2
        assert len(circles) == 1
        assert circles[0].options["radius"] == 1000.0

    def test_generate_nearby_map(self, make_incident, reference_point, tmp_path):
        """Test the map is written to disk."""
        output = tmp_path / "nearby.html"

        path = generate_nearby_map(
            reference_point, [make_incident("a", 40.0, -75.0)], 1.0, output_path=str(output)
        )

        assert path == str(output)
        assert output.exists()
        assert "leaflet" in output.read_text().lower()


class TestGenerateMapCLI:
    """Test the command-line map generator."""

    def test_main(self, tmp_path, capsys, sample_rows):
        """Test the CLI filters a database and writes the map."""
        db_path = tmp_path / "incidents.db"
        output = tmp_path / "map.html"

        from smartsafety.database.connection import DatabaseConnection
        from smartsafety.database.models import IncidentRecord

        db = DatabaseConnection(database_url=f"sqlite:///{db_path}")
        db.create_tables()
        with db.get_session() as session:
            for row in sample_rows:
                session.add(IncidentRecord(**row))
        db.close()

        exit_code = generate_map.main([
            "40.0", "-75.0",
            "--radius-km", "1",
            "--database-url", f"sqlite:///{db_path}",
            "--output", str(output),
        ])

        assert exit_code == 0
        assert output.exists()
        assert "Broken streetlight" in capsys.readouterr().out
