"""
SmartSafety - Storage Module
Photo uploads to the object store.
"""

from smartsafety.storage.object_store import (
    ObjectStoreClient,
    build_object_name,
    guess_content_type,
    get_object_store,
)

__all__ = [
    "ObjectStoreClient",
    "build_object_name",
    "guess_content_type",
    "get_object_store",
]
