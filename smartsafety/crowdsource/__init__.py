"""
SmartSafety - Crowdsource Module
Handles user incident reports.
"""

from smartsafety.crowdsource.report_handler import (
    ReportHandler,
    PhotoAttachment,
    coordinate_from_exif,
)

__all__ = [
    "ReportHandler",
    "PhotoAttachment",
    "coordinate_from_exif",
]
