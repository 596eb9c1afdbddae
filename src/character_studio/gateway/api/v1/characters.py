"""Character API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, status

from ...auth import AuthenticatedUser
from ...dependencies import get_character_service, get_current_user
from ...models import CharacterRecord, Visualization
from ...schemas import (
    CharacterIdRequest,
    CreateCharacterPairRequest,
    GenerateVisualizationRequest,
    GeneratedImageResponse,
    SaveVisualizationRequest,
)
from ...services import CharacterService


router = APIRouter(tags=["Characters"])


@router.post("/getCharacterLibrary", response_model=List[CharacterRecord])
async def get_character_library(
    current_user: AuthenticatedUser = Depends(get_current_user),
    character_service: CharacterService = Depends(get_character_service),
):
    """List the caller's characters, newest first."""
    return await character_service.get_user_characters(current_user.uid)


@router.post("/getCharacterById", response_model=CharacterRecord)
async def get_character_by_id(
    request: CharacterIdRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    character_service: CharacterService = Depends(get_character_service),
):
    """
    Get character by ID.

    Only the owner can read a character.
    """
    return await character_service.get_character(request.character_id, current_user.uid)


@router.post(
    "/createCharacterPair",
    response_model=List[CharacterRecord],
    status_code=status.HTTP_201_CREATED,
)
async def create_character_pair(
    request: CreateCharacterPairRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    character_service: CharacterService = Depends(get_character_service),
):
    """
    Create two characters from two images.

    Each image is analyzed by the model, stored, and saved as its own
    character. If either fails, the other is cleaned up.
    """
    return await character_service.create_character_pair(
        current_user.uid, request.char_a, request.char_b
    )


@router.post("/generateCharacterVisualization", response_model=GeneratedImageResponse)
async def generate_character_visualization(
    request: GenerateVisualizationRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    character_service: CharacterService = Depends(get_character_service),
):
    """Generate a new image of the character. The result is not saved."""
    image = await character_service.generate_visualization(
        request.character_id, current_user.uid, request.prompt
    )
    return GeneratedImageResponse(base64_image=image.to_base64(), mime_type=image.mime_type)


@router.post(
    "/saveVisualization",
    response_model=Visualization,
    status_code=status.HTTP_201_CREATED,
)
async def save_visualization(
    request: SaveVisualizationRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    character_service: CharacterService = Depends(get_character_service),
):
    """Store a generated image and append it to the character's visualizations."""
    return await character_service.save_visualization(
        request.character_id, current_user.uid, request.prompt, request.image
    )
