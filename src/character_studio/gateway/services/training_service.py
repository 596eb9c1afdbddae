"""Batch-training flow for trained characters.

Training is simulated: once the reference images are in the bucket the
record moves to ``training`` and a scheduler callback flips it to
``ready`` after a fixed delay, attaching a synthetic model endpoint.
"""

import asyncio
from datetime import timedelta
from typing import List, NoReturn, Optional, Sequence, Tuple
from uuid import uuid4

from loguru import logger

from ..core.exceptions import (
    CharacterNotReadyError,
    CompensationError,
    UpstreamServiceError,
    ValidationError,
)
from ..core.saga import Saga
from ..core.scheduler import Clock, Scheduler
from ..images import ImagePayload, decode_image, extension_for, sanitize_file_name
from ..inference import InferenceClient
from ..models import TrainedCharacterRecord, TrainingStatus, Visualization
from ..repositories import TrainedCharacterRepository
from ..schemas.training import SignedUpload, SignedUploadUrlsResponse, UploadFileSpec
from ..storage import CATEGORY_TRAINING, BlobStore, blob_path
from .visualizations import (
    ensure_owner,
    load_reference_image,
    sort_visualizations,
    store_visualization,
)

MAX_GENERATION_REFERENCES = 3


class TrainingService:
    """Business logic for batch-trained characters."""

    def __init__(
        self,
        repo: TrainedCharacterRepository,
        blobs: BlobStore,
        inference: InferenceClient,
        clock: Clock,
        scheduler: Scheduler,
        min_images: int = 5,
        training_duration_seconds: float = 30.0,
        signed_url_ttl: timedelta = timedelta(minutes=15),
        max_image_bytes: int = 10 * 1024 * 1024,
        project_id: str = "character-studio",
    ):
        self.repo = repo
        self.blobs = blobs
        self.inference = inference
        self.clock = clock
        self.scheduler = scheduler
        self.min_images = min_images
        self.training_duration_seconds = training_duration_seconds
        self.signed_url_ttl = signed_url_ttl
        self.max_image_bytes = max_image_bytes
        self.project_id = project_id

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_user_characters(self, user_id: str) -> List[TrainedCharacterRecord]:
        characters = await self.repo.get_user_characters(user_id)
        return [sort_visualizations(c) for c in characters]

    async def get_trained_character(
        self, character_id: str, user_id: str
    ) -> TrainedCharacterRecord:
        """Get trained character by ID (owner only)."""
        record = await self.repo.get(character_id)
        return sort_visualizations(ensure_owner(record, character_id, user_id))

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _check_batch(self, character_name: str, count: int) -> str:
        name = character_name.strip()
        if not name:
            raise ValidationError("Character name is required.")
        if count < self.min_images:
            raise ValidationError(
                f"At least {self.min_images} images are required, got {count}."
            )
        return name

    def _new_record(
        self,
        character_id: str,
        user_id: str,
        name: str,
        paths: List[str],
        content_types: List[str],
    ) -> TrainedCharacterRecord:
        now = self.clock.now()
        return TrainedCharacterRecord(
            id=character_id,
            user_id=user_id,
            character_name=name,
            status=TrainingStatus.UPLOADING,
            image_paths=paths,
            image_content_types=content_types,
            created_at=now,
            updated_at=now,
        )

    async def start_training_inline(
        self, user_id: str, character_name: str, images: Sequence[str]
    ) -> TrainedCharacterRecord:
        """
        Create a trained character from inline images.

        Images are uploaded concurrently; the batch only proceeds if every
        upload succeeds.

        Raises:
            ValidationError: Too few images, bad image data or empty name
            UpstreamServiceError: Setup failed and was rolled back
            CompensationError: Setup failed and rollback was incomplete
        """
        name = self._check_batch(character_name, len(images))
        payloads = [
            decode_image(value, max_bytes=self.max_image_bytes, field=f"images[{i}]")
            for i, value in enumerate(images)
        ]

        character_id = str(uuid4())
        paths = [
            blob_path(CATEGORY_TRAINING, user_id, character_id, f"{i:02d}{p.extension}")
            for i, p in enumerate(payloads)
        ]
        saga = Saga(f"start-training:{character_id}")

        try:
            record = self._new_record(
                character_id, user_id, name, paths, [p.mime_type for p in payloads]
            )
            await self.repo.create(record)
            saga.record(
                f"create {self.repo.collection}/{character_id}",
                lambda: self.repo.delete(character_id),
            )

            urls = await self._upload_all(saga, list(zip(paths, payloads)))
            record = await self._begin_training(character_id, image_urls=urls)
        except Exception as e:
            await self._rollback(saga, e)

        return record

    async def _upload_all(
        self, saga: Saga, items: List[Tuple[str, ImagePayload]]
    ) -> List[str]:
        async def upload_one(path: str, image: ImagePayload) -> str:
            url = await self.blobs.upload(path, image.data, image.mime_type)
            saga.record(f"upload {path}", lambda: self.blobs.delete(path))
            return url

        results = await asyncio.gather(
            *(upload_one(path, image) for path, image in items),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.error(f"{len(failures)} of {len(items)} training uploads failed")
            raise failures[0]
        return list(results)

    async def request_upload_urls(
        self, user_id: str, character_name: str, files: Sequence[UploadFileSpec]
    ) -> SignedUploadUrlsResponse:
        """
        Phase one of the direct-upload variant.

        Creates the record in ``uploading`` state and returns one signed
        ``PUT`` URL per file.
        """
        name = self._check_batch(character_name, len(files))
        for spec in files:
            if not spec.content_type.startswith("image/"):
                raise ValidationError(f"Unsupported content type: {spec.content_type}")

        character_id = str(uuid4())
        paths = [
            blob_path(
                CATEGORY_TRAINING,
                user_id,
                character_id,
                f"{i:02d}-{sanitize_file_name(spec.file_name, f'image{extension_for(spec.content_type)}')}",
            )
            for i, spec in enumerate(files)
        ]
        saga = Saga(f"upload-urls:{character_id}")

        try:
            record = self._new_record(
                character_id, user_id, name, paths, [spec.content_type for spec in files]
            )
            await self.repo.create(record)
            saga.record(
                f"create {self.repo.collection}/{character_id}",
                lambda: self.repo.delete(character_id),
            )
            upload_urls = await asyncio.gather(
                *(
                    self.blobs.generate_upload_url(path, spec.content_type, self.signed_url_ttl)
                    for path, spec in zip(paths, files)
                )
            )
        except Exception as e:
            await self._rollback(saga, e)

        logger.info(f"Issued {len(paths)} signed upload URLs for character {character_id}")
        return SignedUploadUrlsResponse(
            character_id=character_id,
            uploads=[
                SignedUpload(
                    file_name=spec.file_name,
                    path=path,
                    upload_url=url,
                    public_url=self.blobs.public_url(path),
                    content_type=spec.content_type,
                )
                for spec, path, url in zip(files, paths, upload_urls)
            ],
            expires_in_seconds=int(self.signed_url_ttl.total_seconds()),
        )

    async def confirm_uploads(self, character_id: str, user_id: str) -> TrainedCharacterRecord:
        """
        Phase two of the direct-upload variant.

        Every planned object must be present. Missing objects leave the
        record in ``uploading`` so the client can retry. The record belongs
        to the client from phase one on, so a failure here marks it
        ``failed`` instead of deleting it.
        """
        record = await self.get_trained_character(character_id, user_id)
        if record.status != TrainingStatus.UPLOADING:
            raise ValidationError(f"Character is already {record.status.value}.")

        present = await asyncio.gather(*(self.blobs.exists(p) for p in record.image_paths))
        missing = [p for p, ok in zip(record.image_paths, present) if not ok]
        if missing:
            raise ValidationError(
                f"{len(missing)} of {len(record.image_paths)} images have not been uploaded."
            )

        try:
            urls = await asyncio.gather(*(self.blobs.publish(p) for p in record.image_paths))
        except Exception as e:
            logger.exception(f"Publishing uploads failed for character {character_id}")
            await self.mark_failed(character_id, "Publishing uploaded images failed.")
            raise UpstreamServiceError("training", "Internal Server Error") from e

        # A concurrent confirm that lost the race fails here with a 400 and
        # leaves the winner's record alone.
        return await self._begin_training(character_id, image_urls=list(urls))

    async def _rollback(self, saga: Saga, error: Exception) -> NoReturn:
        logger.exception(f"Training setup failed for {saga.name}")
        try:
            await saga.compensate()
        except CompensationError as ce:
            logger.error(f"CRITICAL: {ce.details}. Manual cleanup required.")
            raise ce from error
        if isinstance(error, ValidationError):
            raise error
        raise UpstreamServiceError("training", "Internal Server Error") from error

    # ------------------------------------------------------------------
    # Simulated training
    # ------------------------------------------------------------------

    async def _begin_training(self, character_id: str, **fields) -> TrainedCharacterRecord:
        record = await self.repo.set_status(
            character_id, TrainingStatus.TRAINING, updated_at=self.clock.now(), **fields
        )
        self.scheduler.call_later(
            self.training_duration_seconds,
            lambda: self.complete_training(character_id),
        )
        logger.info(
            f"Training started for character {character_id} "
            f"({self.training_duration_seconds}s simulated)"
        )
        return record

    def endpoint_for(self, character_id: str) -> str:
        return f"projects/{self.project_id}/locations/global/endpoints/character-{character_id}"

    async def complete_training(self, character_id: str) -> None:
        """Finish the simulated job: ``training`` -> ``ready``, or ``failed`` on error."""
        try:
            record = await self.repo.get(character_id)
            if record is None or record.status != TrainingStatus.TRAINING:
                logger.warning(f"Skipping training completion for {character_id}: not training")
                return
            await self.repo.set_status(
                character_id,
                TrainingStatus.READY,
                updated_at=self.clock.now(),
                model_endpoint=self.endpoint_for(character_id),
            )
            logger.info(f"Character {character_id} is ready")
        except Exception as e:
            logger.exception(f"Training completion failed for {character_id}")
            await self.mark_failed(character_id, str(e))

    async def mark_failed(self, character_id: str, reason: str) -> None:
        try:
            await self.repo.set_status(
                character_id,
                TrainingStatus.FAILED,
                updated_at=self.clock.now(),
                error=reason,
            )
        except Exception:
            logger.exception(f"Could not mark character {character_id} as failed")

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_image(
        self, character_id: str, user_id: str, prompt: str
    ) -> Tuple[ImagePayload, str]:
        """Generate an image with a ready character's endpoint. Nothing is persisted."""
        record = await self.get_trained_character(character_id, user_id)
        if record.status != TrainingStatus.READY or not record.model_endpoint:
            raise CharacterNotReadyError(record.status.value)

        references = await asyncio.gather(
            *(
                load_reference_image(self.blobs, path, mime_type=mime)
                for path, mime in self._references(record)
            )
        )
        image = await self.inference.generate_image(
            prompt, list(references), model_endpoint=record.model_endpoint
        )
        return image, record.model_endpoint

    @staticmethod
    def _references(record: TrainedCharacterRecord) -> List[Tuple[str, Optional[str]]]:
        """Reference keys with their stored content type, if the record has one."""
        paths = record.image_paths[:MAX_GENERATION_REFERENCES]
        types = record.image_content_types
        return [(path, types[i] if i < len(types) else None) for i, path in enumerate(paths)]

    async def save_visualization(
        self, character_id: str, user_id: str, prompt: str, image: str
    ) -> Visualization:
        """Persist a generated image for a trained character (owner only)."""
        await self.get_trained_character(character_id, user_id)
        payload = decode_image(image, default_mime="image/png", max_bytes=self.max_image_bytes)
        return await store_visualization(
            self.repo, self.blobs, self.clock, user_id, character_id, prompt, payload
        )
