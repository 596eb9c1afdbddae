"""Character service with access control."""

from typing import List
from uuid import uuid4

from loguru import logger

from ..core.exceptions import (
    CompensationError,
    ResourceAccessDeniedError,
    ResourceNotFoundError,
    UpstreamServiceError,
)
from ..core.saga import Saga
from ..core.scheduler import Clock
from ..images import ImagePayload, decode_image
from ..inference import InferenceClient
from ..models import CharacterRecord, Visualization
from ..repositories import CharacterRepository
from ..storage import CATEGORY_CHARACTERS, BlobStore, blob_path
from .visualizations import (
    ensure_owner,
    load_reference_image,
    sort_visualizations,
    store_visualization,
)


class CharacterService:
    """Business logic for characters created from analyzed images."""

    def __init__(
        self,
        character_repo: CharacterRepository,
        blobs: BlobStore,
        inference: InferenceClient,
        clock: Clock,
        max_image_bytes: int = 10 * 1024 * 1024,
    ):
        self.character_repo = character_repo
        self.blobs = blobs
        self.inference = inference
        self.clock = clock
        self.max_image_bytes = max_image_bytes

    async def get_user_characters(self, user_id: str) -> List[CharacterRecord]:
        """Get all characters for a user, newest first."""
        characters = await self.character_repo.get_user_characters(user_id)
        return [sort_visualizations(c) for c in characters]

    async def get_character(self, character_id: str, user_id: str) -> CharacterRecord:
        """Get character by ID (owner only)."""
        character = await self.character_repo.get(character_id)
        return sort_visualizations(ensure_owner(character, character_id, user_id))

    async def create_character_pair(
        self, user_id: str, char_a: str, char_b: str
    ) -> List[CharacterRecord]:
        """
        Create two characters, one per image.

        Each image is described by the model, stored in the bucket and
        written as its own record. The pair is all-or-nothing from the
        caller's point of view: if anything fails, completed steps are
        compensated and an error is raised.

        Raises:
            ValidationError: If either image cannot be decoded
            UpstreamServiceError: If creation failed and cleanup succeeded
            CompensationError: If creation failed and cleanup did not
        """
        images = [
            decode_image(char_a, max_bytes=self.max_image_bytes, field="charA"),
            decode_image(char_b, max_bytes=self.max_image_bytes, field="charB"),
        ]

        saga = Saga(f"create-character-pair:{user_id}")
        created: List[CharacterRecord] = []
        try:
            for image in images:
                created.append(await self._create_from_image(user_id, image, saga))
        except Exception as e:
            logger.exception("Error creating character pair")
            if saga.steps:
                logger.info(f"Cleaning up {len(saga.steps)} step(s) after failed pair creation")
                try:
                    await saga.compensate()
                except CompensationError as ce:
                    logger.error(f"CRITICAL: {ce.details}. Manual cleanup required.")
                    raise ce from e
                logger.info("Cleanup successful after failed pair creation")
            raise UpstreamServiceError(
                "character-pair", "Internal Server Error while creating characters."
            ) from e

        logger.info(f"Created character pair {[c.id for c in created]} for user {user_id}")
        return created

    async def _create_from_image(
        self, user_id: str, image: ImagePayload, saga: Saga
    ) -> CharacterRecord:
        profile = await self.inference.describe_character(image)

        character_id = str(uuid4())
        path = blob_path(CATEGORY_CHARACTERS, user_id, character_id, f"reference{image.extension}")
        image_url = await self.blobs.upload(path, image.data, image.mime_type)
        saga.record(f"upload {path}", lambda: self.blobs.delete(path))

        character = CharacterRecord(
            id=character_id,
            user_id=user_id,
            character_name=profile.character_name,
            description=profile.description,
            keywords=profile.keywords,
            image_url=image_url,
            image_path=path,
            created_at=self.clock.now(),
        )
        await self.character_repo.create(character)
        saga.record(
            f"create {self.character_repo.collection}/{character_id}",
            lambda: self.character_repo.delete(character_id),
        )
        return character

    async def generate_visualization(
        self, character_id: str, user_id: str, prompt: str
    ) -> ImagePayload:
        """Generate a new image of a character from a prompt. Nothing is persisted."""
        try:
            character = await self.get_character(character_id, user_id)
        except (ResourceNotFoundError, ResourceAccessDeniedError):
            raise ResourceNotFoundError(
                "Character", character_id, message="Character not found or access denied."
            )

        reference = await load_reference_image(
            self.blobs, character.image_path, character.image_url
        )
        return await self.inference.generate_image(prompt, [reference])

    async def save_visualization(
        self, character_id: str, user_id: str, prompt: str, image: str
    ) -> Visualization:
        """Persist a previously generated image as a new visualization (owner only)."""
        await self.get_character(character_id, user_id)
        payload = decode_image(
            image, default_mime="image/png", max_bytes=self.max_image_bytes
        )
        return await store_visualization(
            self.character_repo,
            self.blobs,
            self.clock,
            user_id,
            character_id,
            prompt,
            payload,
        )
