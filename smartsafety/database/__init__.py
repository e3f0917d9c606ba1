"""
Database module for SmartSafety
Incident repository persistence
"""

from .connection import DatabaseConnection, get_db
from .models import Base, IncidentRecord
from .repository import IncidentRepository

__all__ = [
    "DatabaseConnection",
    "get_db",
    "Base",
    "IncidentRecord",
    "IncidentRepository",
]
