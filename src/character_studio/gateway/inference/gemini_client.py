"""
Inference client for character analysis and image generation.

Wraps the Gemini API:
- Character images → creative name, description, keywords (structured JSON)
- Prompt + reference images → a newly generated image
"""

import json
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from google import genai
from google.genai import types
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..core.exceptions import InferenceError, UpstreamServiceError
from ..images import ImagePayload

DESCRIBE_CHARACTER_PROMPT = (
    "Analyze this character image and describe it. Provide a creative name, "
    "a short compelling description, and 5-7 relevant keywords."
)

CHARACTER_PROFILE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "characterName": types.Schema(type=types.Type.STRING),
        "description": types.Schema(type=types.Type.STRING),
        "keywords": types.Schema(
            type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)
        ),
    },
    required=["characterName", "description", "keywords"],
)


class CharacterProfile(BaseModel):
    """What the model says about a character image."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    character_name: str
    description: str
    keywords: List[str] = Field(default_factory=list)


class InferenceClient(ABC):
    """Generative model operations needed by the services."""

    @abstractmethod
    async def describe_character(self, image: ImagePayload) -> CharacterProfile:
        """Produce a name, description and keywords for a character image."""

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        references: Sequence[ImagePayload],
        model_endpoint: Optional[str] = None,
    ) -> ImagePayload:
        """Generate one image from a prompt and reference images."""


class GeminiInferenceClient(InferenceClient):
    """InferenceClient backed by the google-genai SDK."""

    def __init__(
        self,
        client: genai.Client,
        text_model: str = "gemini-2.5-flash",
        image_model: str = "gemini-2.5-flash-image",
    ):
        self.client = client
        self.text_model = text_model
        self.image_model = image_model

    async def describe_character(self, image: ImagePayload) -> CharacterProfile:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.text_model,
                contents=[
                    types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
                    DESCRIBE_CHARACTER_PROMPT,
                ],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=CHARACTER_PROFILE_SCHEMA,
                ),
            )
        except Exception as e:
            logger.exception("Character analysis request failed")
            raise UpstreamServiceError("inference") from e

        try:
            return CharacterProfile.model_validate(json.loads(response.text or ""))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            logger.error(f"Failed to parse model response as character profile: {e}")
            logger.error(f"Raw response: {response.text}")
            raise InferenceError("AI response was not valid JSON.")

    async def generate_image(
        self,
        prompt: str,
        references: Sequence[ImagePayload],
        model_endpoint: Optional[str] = None,
    ) -> ImagePayload:
        contents: list = [
            types.Part.from_bytes(data=ref.data, mime_type=ref.mime_type)
            for ref in references
        ]
        contents.append(prompt)

        if model_endpoint:
            # Trained endpoints are simulated; the base image model serves them.
            logger.info(f"Generating for endpoint {model_endpoint} via {self.image_model}")

        try:
            response = await self.client.aio.models.generate_content(
                model=self.image_model,
                contents=contents,
                config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
            )
        except Exception as e:
            logger.exception("Image generation request failed")
            raise UpstreamServiceError("inference") from e

        image = first_inline_image(response)
        if image is None:
            raise InferenceError("No image was generated by the model.")
        return image


def first_inline_image(response: types.GenerateContentResponse) -> Optional[ImagePayload]:
    """Return the first inline image part of a response, if any."""
    for candidate in response.candidates or []:
        if not candidate.content or not candidate.content.parts:
            continue
        for part in candidate.content.parts:
            if part.inline_data and part.inline_data.data:
                return ImagePayload(
                    data=part.inline_data.data,
                    mime_type=part.inline_data.mime_type or "image/png",
                )
    return None
