"""
SmartSafety - HTTP API
"""
