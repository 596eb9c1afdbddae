"""Blob storage clients."""

from .blob_store import (
    CATEGORY_CHARACTERS,
    CATEGORY_TRAINING,
    CATEGORY_VISUALIZATIONS,
    BlobStore,
    GcsBlobStore,
    blob_path,
)

__all__ = [
    "BlobStore",
    "GcsBlobStore",
    "blob_path",
    "CATEGORY_CHARACTERS",
    "CATEGORY_TRAINING",
    "CATEGORY_VISUALIZATIONS",
]
