"""Trained character API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, status

from ...auth import AuthenticatedUser
from ...dependencies import get_current_user, get_training_service
from ...models import TrainedCharacterRecord, Visualization
from ...schemas import (
    CharacterIdRequest,
    ConfirmUploadsRequest,
    GenerateVisualizationRequest,
    GeneratedImageResponse,
    SaveVisualizationRequest,
    SignedUploadUrlsRequest,
    SignedUploadUrlsResponse,
    StartTrainingRequest,
)
from ...services import TrainingService


router = APIRouter(tags=["Training"])


@router.post(
    "/getSignedUploadUrls",
    response_model=SignedUploadUrlsResponse,
    status_code=status.HTTP_201_CREATED,
)
async def get_signed_upload_urls(
    request: SignedUploadUrlsRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    training_service: TrainingService = Depends(get_training_service),
):
    """
    Start a direct-upload training batch.

    Returns one short-lived signed PUT URL per file. Call
    /confirmTrainingUploads once every upload has succeeded.
    """
    return await training_service.request_upload_urls(
        current_user.uid, request.character_name, request.files
    )


@router.post(
    "/confirmTrainingUploads",
    response_model=TrainedCharacterRecord,
    status_code=status.HTTP_202_ACCEPTED,
)
async def confirm_training_uploads(
    request: ConfirmUploadsRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    training_service: TrainingService = Depends(get_training_service),
):
    """Confirm direct uploads and start (simulated) training."""
    return await training_service.confirm_uploads(request.character_id, current_user.uid)


@router.post(
    "/startCharacterTraining",
    response_model=TrainedCharacterRecord,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_character_training(
    request: StartTrainingRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    training_service: TrainingService = Depends(get_training_service),
):
    """Upload a batch of inline images and start (simulated) training."""
    return await training_service.start_training_inline(
        current_user.uid, request.character_name, request.images
    )


@router.post("/getTrainedCharacterLibrary", response_model=List[TrainedCharacterRecord])
async def get_trained_character_library(
    current_user: AuthenticatedUser = Depends(get_current_user),
    training_service: TrainingService = Depends(get_training_service),
):
    """List the caller's trained characters, newest first."""
    return await training_service.get_user_characters(current_user.uid)


@router.post("/getTrainedCharacterById", response_model=TrainedCharacterRecord)
async def get_trained_character_by_id(
    request: CharacterIdRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    training_service: TrainingService = Depends(get_training_service),
):
    """Get a trained character, including its current status."""
    return await training_service.get_trained_character(request.character_id, current_user.uid)


@router.post("/generateTrainedCharacterImage", response_model=GeneratedImageResponse)
async def generate_trained_character_image(
    request: GenerateVisualizationRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    training_service: TrainingService = Depends(get_training_service),
):
    """Generate an image with a ready character's model endpoint. Not saved."""
    image, endpoint = await training_service.generate_image(
        request.character_id, current_user.uid, request.prompt
    )
    return GeneratedImageResponse(
        base64_image=image.to_base64(),
        mime_type=image.mime_type,
        model_endpoint=endpoint,
    )


@router.post(
    "/saveTrainedCharacterVisualization",
    response_model=Visualization,
    status_code=status.HTTP_201_CREATED,
)
async def save_trained_character_visualization(
    request: SaveVisualizationRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    training_service: TrainingService = Depends(get_training_service),
):
    """Store a generated image for a trained character."""
    return await training_service.save_visualization(
        request.character_id, current_user.uid, request.prompt, request.image
    )
