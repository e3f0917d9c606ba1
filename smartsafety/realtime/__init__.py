"""
SmartSafety - Realtime Module
Change feed, store synchronization and the live map session.
"""

from smartsafety.realtime.change_feed import ChangeFeed, Subscription
from smartsafety.realtime.sync import IncidentSync
from smartsafety.realtime.session import LiveMapSession

__all__ = [
    "ChangeFeed",
    "Subscription",
    "IncidentSync",
    "LiveMapSession",
]
