"""
SmartSafety - Visualization Module
"""

from smartsafety.visualization.map_generator import (
    create_incident_map,
    generate_nearby_map,
)

__all__ = [
    "create_incident_map",
    "generate_nearby_map",
]
