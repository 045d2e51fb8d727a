"""Object storage for uploaded assets (payment proofs, question images,
certificate backgrounds).

The bucket is S3 compatible (AWS S3, Cloudflare R2, MinIO). Objects are
addressed by key; the key doubles as the asset id handed back to callers so
that a later ``delete`` can compensate an upload.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any
from uuid import uuid4

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import Settings, get_settings
from app.core.exceptions import CollaboratorError, UploadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredAsset:
    """Location of an uploaded object."""

    url: str
    id: str


class ObjectStorage:
    """S3 compatible object storage client."""

    def __init__(self, settings: Settings, client: Any | None = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=self.settings.STORAGE_ENDPOINT_URL,
                aws_access_key_id=self.settings.STORAGE_ACCESS_KEY,
                aws_secret_access_key=self.settings.STORAGE_SECRET_KEY,
                region_name=self.settings.STORAGE_REGION,
            )
        return self._client

    def _public_url(self, key: str) -> str:
        return f"{self.settings.STORAGE_PUBLIC_BASE_URL.rstrip('/')}/{key}"

    def upload(
        self,
        content: bytes,
        filename: str,
        folder: str,
        content_type: str | None = None,
    ) -> StoredAsset:
        """Upload bytes under ``folder`` and return the public url and key."""
        extension = os.path.splitext(filename)[1].lower()
        key = f"{folder}/{uuid4().hex}{extension}"

        extra: dict[str, Any] = {}
        if content_type:
            extra["ContentType"] = content_type

        try:
            self.client.put_object(
                Bucket=self.settings.STORAGE_BUCKET,
                Key=key,
                Body=content,
                **extra,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Object upload failed for {key}: {e}")
            raise CollaboratorError("Failed to upload file", error=str(e))

        return StoredAsset(url=self._public_url(key), id=key)

    def delete(self, asset_id: str) -> None:
        """Delete an object. Deleting a missing key is acknowledged as success."""
        try:
            self.client.delete_object(Bucket=self.settings.STORAGE_BUCKET, Key=asset_id)
        except ClientError as e:
            code = (e.response.get("Error") or {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                return
            raise CollaboratorError("Failed to delete file", error=str(e))
        except BotoCoreError as e:
            raise CollaboratorError("Failed to delete file", error=str(e))

    def fetch(self, url: str) -> bytes:
        """Download an asset by its public url."""
        try:
            response = httpx.get(
                url,
                timeout=self.settings.ASSET_FETCH_TIMEOUT_SECONDS,
                follow_redirects=True,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Asset download failed for {url}: {e}")
            raise CollaboratorError("Failed to download asset", error=str(e))
        return response.content


@lru_cache
def get_object_storage() -> ObjectStorage:
    """Object storage dependency, shared across requests."""
    return ObjectStorage(get_settings())


def validate_upload(
    settings: Settings,
    file_name: str | None,
    content: bytes,
    allowed_extensions: list[str],
) -> None:
    """Reject uploads with a disallowed extension or over the size limit."""
    if not file_name:
        raise UploadError("No file provided")

    extension = os.path.splitext(file_name)[1].lower()
    if extension not in allowed_extensions:
        raise UploadError(
            f"File type '{extension}' is not allowed",
            details={"allowed": allowed_extensions},
        )

    if len(content) > settings.max_upload_bytes:
        raise UploadError(f"File size exceeds {settings.MAX_UPLOAD_SIZE_MB}MB limit")
