"""Shared helpers for owner checks, reference images and saved visualizations."""

import mimetypes
from typing import Optional, TypeVar, Union
from uuid import uuid4

import httpx
from loguru import logger

from ..core.exceptions import (
    ResourceAccessDeniedError,
    ResourceNotFoundError,
    UpstreamServiceError,
)
from ..core.saga import Saga
from ..core.scheduler import Clock
from ..images import ImagePayload
from ..models import DocumentModel, Visualization
from ..repositories import CharacterRepository, TrainedCharacterRepository
from ..storage import CATEGORY_VISUALIZATIONS, BlobStore, blob_path

RecordType = TypeVar("RecordType", bound=DocumentModel)


def ensure_owner(
    record: Optional[RecordType], character_id: str, user_id: str
) -> RecordType:
    """
    Return ``record`` if it exists and belongs to ``user_id``.

    Raises:
        ResourceNotFoundError: If the record does not exist
        ResourceAccessDeniedError: If it belongs to someone else
    """
    if record is None:
        raise ResourceNotFoundError("Character", character_id)
    if record.user_id != user_id:
        raise ResourceAccessDeniedError()
    return record


def mime_type_for(path: str, default: str = "image/jpeg") -> str:
    return mimetypes.guess_type(path)[0] or default


async def load_reference_image(
    blobs: BlobStore,
    path: Optional[str],
    url: Optional[str] = None,
    mime_type: Optional[str] = None,
) -> ImagePayload:
    """
    Fetch a stored reference image, preferring the blob key over the public URL.

    Records created before keys were stored only have ``imageUrl``. A known
    ``mime_type`` wins over guessing from the key.
    """
    if path:
        return ImagePayload(
            data=await blobs.download(path), mime_type=mime_type or mime_type_for(path)
        )

    if url:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.get(url)
            response.raise_for_status()
        mime = response.headers.get("content-type", "").split(";")[0] or mime_type_for(url)
        return ImagePayload(data=response.content, mime_type=mime)

    raise UpstreamServiceError("document-store", "Character data is invalid.")


async def store_visualization(
    repo: Union[CharacterRepository, TrainedCharacterRepository],
    blobs: BlobStore,
    clock: Clock,
    user_id: str,
    character_id: str,
    prompt: str,
    image: ImagePayload,
) -> Visualization:
    """
    Upload a generated image and append it to the character's visualization list.

    If the append fails the uploaded blob is removed again.
    """
    visualization_id = str(uuid4())
    path = blob_path(
        CATEGORY_VISUALIZATIONS, user_id, character_id, f"{visualization_id}{image.extension}"
    )
    saga = Saga(f"save-visualization:{character_id}")

    image_url = await blobs.upload(path, image.data, image.mime_type)
    saga.record(f"upload {path}", lambda: blobs.delete(path))

    visualization = Visualization(
        id=visualization_id,
        image_url=image_url,
        image_path=path,
        prompt=prompt,
        created_at=clock.now(),
    )
    try:
        await repo.append_visualization(character_id, visualization)
    except Exception as e:
        logger.exception(f"Error saving visualization for character {character_id}")
        await saga.compensate()
        raise UpstreamServiceError("document-store") from e

    logger.info(f"Saved visualization {visualization_id} for character {character_id}")
    return visualization


def sort_visualizations(record: RecordType) -> RecordType:
    """Visualizations in creation order."""
    record.visualizations.sort(key=lambda v: v.created_at)
    return record
