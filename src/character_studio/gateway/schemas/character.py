"""Character schemas."""

from pydantic import Field

from .common import CamelModel


class CharacterIdRequest(CamelModel):
    """Request addressing one character."""
    character_id: str = Field(..., min_length=1)


class CreateCharacterPairRequest(CamelModel):
    """Two character images as data URLs or bare base64."""
    char_a: str = Field(..., min_length=1)
    char_b: str = Field(..., min_length=1)


class GenerateVisualizationRequest(CamelModel):
    """Prompt for a new image of an existing character."""
    character_id: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)


class SaveVisualizationRequest(CamelModel):
    """Previously generated image to store with its prompt."""
    character_id: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1)
