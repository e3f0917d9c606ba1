"""
Object store client for incident photos.

Talks to a storage REST API with bucket/object paths:

    POST {base_url}/object/{bucket}/{name}         upload (x-upsert allowed)
    GET  {base_url}/object/public/{bucket}/{name}  public download URL
"""

import logging
import mimetypes
import time
from typing import Optional

import httpx

from smartsafety.core.config import settings
from smartsafety.core.constants import DEFAULT_CONTENT_TYPE, DEFAULT_PHOTO_EXTENSION
from smartsafety.core.exceptions import UploadFailure

logger = logging.getLogger(__name__)


def build_object_name(filename: Optional[str] = None, timestamp_ms: Optional[int] = None) -> str:
    """
    Collision-resistant object name ``<epoch-ms>.<ext>``.

    The extension is taken from ``filename`` when it has one.
    """
    stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    extension = DEFAULT_PHOTO_EXTENSION
    if filename and "." in filename:
        candidate = filename.rsplit(".", 1)[-1].strip().lower()
        if candidate and "/" not in candidate:
            extension = candidate
    return f"{stamp}.{extension}"


def guess_content_type(filename: Optional[str]) -> str:
    """Content type from the file name, ``image/jpeg`` when unknown."""
    if filename:
        content_type, _ = mimetypes.guess_type(filename)
        if content_type:
            return content_type
    return DEFAULT_CONTENT_TYPE


class ObjectStoreClient:
    """
    Client for the photo bucket.

    Usage:
        with ObjectStoreClient(base_url, api_key) as store:
            url = store.upload("1700000000000.jpg", data)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        bucket: str = "incidents",
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the object store client.

        Args:
            base_url: Storage API base URL
            api_key: Service key sent as bearer token
            bucket: Bucket holding incident photos
            timeout: HTTP request timeout in seconds
            client: Preconfigured httpx client
        """
        if not base_url:
            raise ValueError("Object store base URL is required")
        if not api_key:
            raise ValueError("Object store API key is required")

        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self.timeout = timeout
        self._client = client or httpx.Client(
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "apikey": api_key,
            },
        )

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self) -> None:
        self._client.close()

    def public_url(self, name: str) -> str:
        """Publicly resolvable URL of an object."""
        return f"{self.base_url}/object/public/{self.bucket}/{name}"

    def upload(
        self,
        name: str,
        data: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
        upsert: bool = True,
    ) -> str:
        """
        Upload a blob and return its public URL.

        Args:
            name: Object name inside the bucket
            data: Blob content
            content_type: MIME type stored with the object
            upsert: Overwrite an existing object with the same name

        Returns:
            Public URL of the stored object

        Raises:
            UploadFailure: if the store rejects the upload or the request fails
        """
        url = f"{self.base_url}/object/{self.bucket}/{name}"
        headers = {
            "Content-Type": content_type,
            "x-upsert": "true" if upsert else "false",
        }

        logger.info(f"Uploading {name} ({len(data)} bytes) to bucket {self.bucket}")
        try:
            response = self._client.post(url, content=data, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Object store rejected {name}: HTTP {e.response.status_code}")
            raise UploadFailure(f"upload of {name} rejected: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Upload of {name} failed: {e}")
            raise UploadFailure(f"upload of {name} failed: {e}") from e

        return self.public_url(name)


def get_object_store() -> Optional[ObjectStoreClient]:
    """Object store from settings, or None when storage is not configured."""
    if not settings.storage_configured:
        return None
    return ObjectStoreClient(
        base_url=settings.storage_url,
        api_key=settings.storage_api_key,
        bucket=settings.storage_bucket,
        timeout=settings.storage_timeout_seconds,
    )
