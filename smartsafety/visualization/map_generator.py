"""
Map Visualization Module for SmartSafety

Generates interactive Folium maps of the incidents around the viewer:
the search radius as a circle and one marker per nearby incident.
"""

import html
import logging
from typing import Optional, Sequence

import folium

from smartsafety.core.geo_utils import Coordinate
from smartsafety.incidents.models import Incident, IncidentStatus

logger = logging.getLogger(__name__)

# Marker colors by status; unknown statuses fall back to gray
STATUS_COLORS = {
    IncidentStatus.PENDING.value: "orange",
    IncidentStatus.UNDER_REVIEW.value: "blue",
    IncidentStatus.RESOLVED.value: "green",
    IncidentStatus.REJECTED.value: "lightgray",
}


def get_status_color(status: str) -> str:
    """Get marker color based on incident status."""
    return STATUS_COLORS.get(status, "gray")


def build_popup_html(incident: Incident) -> str:
    """Popup body: title with status, description, photo and date."""
    photo_html = ""
    if incident.photo_url:
        photo_html = (
            f'<img src="{html.escape(incident.photo_url)}" '
            f'style="width: 200px; height: 120px; margin-bottom: 4px; border-radius: 8px;"><br>'
        )
    date_html = ""
    if incident.created_at:
        date_html = f'<span style="font-size: 12px; color: #666;">{incident.created_at.strftime("%Y-%m-%d %H:%M")} UTC</span>'

    return f"""
    <div style="font-family: Arial; width: 220px;">
        <h4 style="margin: 0 0 4px 0;">{html.escape(incident.display_title)}</h4>
        <p style="margin: 0 0 4px 0; font-size: 14px;">{html.escape(incident.description)}</p>
        {photo_html}
        {date_html}
    </div>
    """


def create_incident_map(
    center: Coordinate,
    incidents: Sequence[Incident],
    radius_km: float,
    zoom: int = 15,
    title: Optional[str] = None,
) -> folium.Map:
    """
    Create an interactive map of nearby incidents.

    Args:
        center: Viewer position
        incidents: Incidents to place (already filtered to the radius)
        radius_km: Search radius drawn around the viewer
        zoom: Initial zoom level (1-18)
        title: Optional title overlay

    Returns:
        Folium Map object
    """
    incident_map = folium.Map(location=list(center.to_tuple()), zoom_start=zoom)

    folium.Circle(
        location=list(center.to_tuple()),
        radius=radius_km * 1000,
        color="rgba(0,150,255,0.5)",
        fill=True,
        fill_color="rgba(0,150,255,0.2)",
        fill_opacity=0.2,
    ).add_to(incident_map)

    folium.CircleMarker(
        location=list(center.to_tuple()),
        radius=6,
        color="blue",
        fill=True,
        fill_opacity=1.0,
        tooltip="You are here",
    ).add_to(incident_map)

    placed = 0
    for incident in incidents:
        if not incident.has_location:
            continue
        folium.Marker(
            location=[incident.latitude, incident.longitude],
            tooltip=incident.title,
            popup=folium.Popup(build_popup_html(incident), max_width=260),
            icon=folium.Icon(color=get_status_color(incident.status)),
        ).add_to(incident_map)
        placed += 1

    if title:
        title_html = f'''
        <div style="position: fixed;
                    top: 10px; left: 50px;
                    background-color: rgba(255,255,255,0.9);
                    padding: 10px 20px;
                    border-radius: 5px;
                    z-index: 9999;
                    font-family: Arial;">
            <h3 style="margin: 0;">{html.escape(title)}</h3>
            <p style="margin: 5px 0 0 0; color: #555; font-size: 12px;">
                {placed} incidents within {radius_km:g} km
            </p>
        </div>
        '''
        incident_map.get_root().html.add_child(folium.Element(title_html))

    logger.info(f"Created map with {placed} incidents")
    return incident_map


def generate_nearby_map(
    center: Coordinate,
    incidents: Sequence[Incident],
    radius_km: float,
    output_path: str = "nearby_incidents.html",
    zoom: int = 15,
) -> str:
    """
    Generate and save a nearby-incidents map.

    Returns:
        Path to saved file
    """
    incident_map = create_incident_map(
        center=center,
        incidents=incidents,
        radius_km=radius_km,
        zoom=zoom,
        title="SmartSafety - Nearby Incidents",
    )
    incident_map.save(output_path)
    logger.info(f"Map saved to {output_path}")
    return output_path
