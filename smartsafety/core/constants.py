"""
SmartSafety - Constants
Static values used throughout the application.
"""

# =============================================================================
# GEODESY
# =============================================================================

# Mean Earth radius used by the haversine formula
EARTH_RADIUS_KM: float = 6371.0

# Radius of the "nearby incidents" view
DEFAULT_RADIUS_KM: float = 1.0

# Slack added to the inclusive radius boundary (1 m, below GPS accuracy)
BOUNDARY_TOLERANCE_KM: float = 0.001

# =============================================================================
# INCIDENTS
# =============================================================================

INCIDENTS_TABLE: str = "incidents"

DEFAULT_STATUS: str = "pending"

# =============================================================================
# PHOTOS
# =============================================================================

DEFAULT_CONTENT_TYPE: str = "image/jpeg"

DEFAULT_PHOTO_EXTENSION: str = "jpg"
