"""
SmartSafety - Incidents Module
Incident records, change events and the local merged store.
"""

from smartsafety.incidents.models import (
    Incident,
    IncidentStatus,
    ChangeKind,
    ChangeEvent,
)
from smartsafety.incidents.observable import ObservableValue
from smartsafety.incidents.store import IncidentStore

__all__ = [
    "Incident",
    "IncidentStatus",
    "ChangeKind",
    "ChangeEvent",
    "ObservableValue",
    "IncidentStore",
]
