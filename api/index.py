"""
SmartSafety - Vercel Serverless Entry Point
Serves the incident feed, nearby view, reporting and maps
"""

import os
import sys

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from smartsafety.api.main import app

# Vercel serverless handler
handler = app
