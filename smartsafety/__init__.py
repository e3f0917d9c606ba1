"""
SmartSafety
Location-tagged safety incident reporting with a live nearby-incidents view.
"""

__version__ = "0.1.0"
