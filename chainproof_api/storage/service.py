"""Object storage for uploaded content and certificate artifacts.

Uses MinIO (S3-compatible). Callers address objects by key only; keys are
built by `chainproof_api.protection.naming` so no path traversal is possible.
"""

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from io import BytesIO
from typing import Optional

from minio import Minio
from minio.error import S3Error

from chainproof_api.errors import NotFoundError, StorageError
from chainproof_api.settings import get_settings

logger = logging.getLogger(__name__)


class ObjectStore(ABC):
    """Opaque blob store addressed by key."""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> dict:
        """Store `data` under `key` and return ``{"path": key}``.

        Raises:
            StorageError: If the upload did not complete
        """

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Return a URL the object can be downloaded from."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return the stored bytes.

        Raises:
            NotFoundError: If no object exists under `key`
        """


class MinioObjectStore(ObjectStore):
    """MinIO-backed object store for one bucket."""

    def __init__(self, bucket: str, client: Optional[Minio] = None):
        """Initialize storage with a MinIO client and ensure the bucket exists."""
        settings = get_settings()
        self.bucket = bucket
        self.public_base_url = settings.storage_public_base_url
        self.signed_url_ttl = settings.signed_url_ttl_seconds
        self.client = client or Minio(
            settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_use_ssl,
        )
        self._ensure_bucket()

    def _ensure_bucket(self):
        try:
            if not self.client.bucket_exists(self.bucket):
                self.client.make_bucket(self.bucket)
                logger.info(f"Created bucket: {self.bucket}")
        except S3Error as e:
            logger.error(f"Error ensuring bucket {self.bucket} exists: {e}")

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> dict:
        try:
            self.client.put_object(
                self.bucket,
                key,
                BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except S3Error as e:
            logger.error(f"Failed to upload object {key}: {e}")
            raise StorageError(f"Storage upload failed: {e.code}") from e
        logger.debug(f"Uploaded object: {key} ({len(data)} bytes)")
        return {"path": key}

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{self.bucket}/{key}"
        try:
            return self.client.presigned_get_object(
                self.bucket,
                key,
                expires=timedelta(seconds=self.signed_url_ttl),
            )
        except S3Error as e:
            logger.error(f"Failed to generate signed URL for {key}: {e}")
            raise StorageError(f"Could not create download URL for {key}") from e

    def get(self, key: str) -> bytes:
        try:
            response = self.client.get_object(self.bucket, key)
        except S3Error as e:
            if e.code == "NoSuchKey":
                raise NotFoundError(f"Object not found: {key}") from e
            logger.error(f"Failed to retrieve object {key}: {e}")
            raise StorageError(f"Storage download failed: {e.code}") from e
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()
