"""Blob storage for reference images and generated visualizations."""

import asyncio
from abc import ABC, abstractmethod
from datetime import timedelta

from google.cloud import storage
from loguru import logger

CATEGORY_CHARACTERS = "characters"
CATEGORY_VISUALIZATIONS = "visualizations"
CATEGORY_TRAINING = "training"


def blob_path(category: str, user_id: str, character_id: str, file_name: str) -> str:
    """Object key laid out as ``{category}/{userId}/{characterId}/{file}``."""
    return f"{category}/{user_id}/{character_id}/{file_name}"


class BlobStore(ABC):
    """Object storage contract used by the services."""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` at ``path``, make it publicly readable and return its URL."""

    @abstractmethod
    async def download(self, path: str) -> bytes:
        """Return the object's bytes."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Whether an object is present at ``path``."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete the object at ``path``."""

    @abstractmethod
    async def generate_upload_url(
        self, path: str, content_type: str, ttl: timedelta
    ) -> str:
        """Signed URL allowing one ``PUT`` of ``path`` until ``ttl`` elapses."""

    @abstractmethod
    async def publish(self, path: str) -> str:
        """Make an existing object publicly readable and return its URL."""

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Long-lived public read URL for ``path``."""


class GcsBlobStore(BlobStore):
    """
    BlobStore backed by a Cloud Storage bucket.

    The google-cloud-storage client is synchronous, so every call is pushed
    to a worker thread to keep the event loop free.
    """

    def __init__(self, bucket: storage.Bucket):
        self.bucket = bucket

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        blob = self.bucket.blob(path)
        await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)
        await asyncio.to_thread(blob.make_public)
        logger.debug(f"Uploaded {len(data)} bytes to gs://{self.bucket.name}/{path}")
        return blob.public_url

    async def download(self, path: str) -> bytes:
        return await asyncio.to_thread(self.bucket.blob(path).download_as_bytes)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.bucket.blob(path).exists)

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(self.bucket.blob(path).delete)
        logger.debug(f"Deleted gs://{self.bucket.name}/{path}")

    async def generate_upload_url(
        self, path: str, content_type: str, ttl: timedelta
    ) -> str:
        blob = self.bucket.blob(path)
        return await asyncio.to_thread(
            blob.generate_signed_url,
            version="v4",
            expiration=ttl,
            method="PUT",
            content_type=content_type,
        )

    async def publish(self, path: str) -> str:
        blob = self.bucket.blob(path)
        await asyncio.to_thread(blob.make_public)
        return blob.public_url

    def public_url(self, path: str) -> str:
        return self.bucket.blob(path).public_url
