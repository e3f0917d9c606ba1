#!/usr/bin/env python3
"""
SmartSafety - Generate Nearby Incidents Map
Loads incidents from the repository and writes an interactive map of the
ones within the radius of a point.
"""
import argparse
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dotenv import load_dotenv

load_dotenv()

from smartsafety.core.config import settings
from smartsafety.core.exceptions import RepositoryFailure
from smartsafety.core.geo_utils import Coordinate, is_valid_coordinate
from smartsafety.core.logging import setup_logging
from smartsafety.database.connection import DatabaseConnection
from smartsafety.database.repository import IncidentRepository
from smartsafety.proximity.filter import ProximityFilter, sort_by_distance
from smartsafety.visualization.map_generator import generate_nearby_map


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate a map of nearby incidents")
    parser.add_argument("latitude", type=float, help="Viewer latitude")
    parser.add_argument("longitude", type=float, help="Viewer longitude")
    parser.add_argument("--radius-km", type=float, default=settings.proximity_radius_km)
    parser.add_argument("--database-url", default=settings.database_url)
    parser.add_argument("--output", default="nearby_incidents.html")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()

    if not is_valid_coordinate(args.latitude, args.longitude):
        print(f"ERROR: invalid coordinate ({args.latitude}, {args.longitude})")
        return 1

    center = Coordinate(latitude=args.latitude, longitude=args.longitude)

    print("=" * 60)
    print("SmartSafety - Generating Nearby Incidents Map")
    print("=" * 60)

    db = DatabaseConnection(database_url=args.database_url)
    db.create_tables()
    repository = IncidentRepository(db)

    try:
        incidents = repository.fetch_all()
    except RepositoryFailure as e:
        print(f"ERROR: {e.user_message} ({e})")
        return 1
    finally:
        db.close()

    nearby = ProximityFilter(args.radius_km).filter(center, incidents)

    print(f"\nIncidents loaded:   {len(incidents)}")
    print(f"Within {args.radius_km:g} km:     {len(nearby)}")
    for incident, distance in sort_by_distance(center, nearby):
        print(f"  - {incident.display_title}: {distance:.2f} km")

    output_path = generate_nearby_map(
        center=center,
        incidents=nearby,
        radius_km=args.radius_km,
        output_path=args.output,
        zoom=settings.map_zoom,
    )

    print(f"\nMap saved to: {output_path}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
