"""Dependency injection for FastAPI endpoints."""

from datetime import timedelta
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import Settings
from .auth import AuthenticatedUser
from .container import StudioServices
from .core.exceptions import MissingTokenError
from .repositories import CharacterRepository, TrainedCharacterRepository
from .services import CharacterService, TrainingService

# Security scheme; missing credentials are reported by get_current_user as 401
security = HTTPBearer(auto_error=False)


def get_services(request: Request) -> StudioServices:
    """Services built (or injected) when the app was created."""
    return request.app.state.services


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# Repository dependencies
def get_character_repository(
    services: StudioServices = Depends(get_services),
    settings: Settings = Depends(get_settings),
) -> CharacterRepository:
    """Get CharacterRepository instance."""
    return CharacterRepository(services.store, settings.CHARACTERS_COLLECTION)


def get_trained_character_repository(
    services: StudioServices = Depends(get_services),
    settings: Settings = Depends(get_settings),
) -> TrainedCharacterRepository:
    """Get TrainedCharacterRepository instance."""
    return TrainedCharacterRepository(services.store, settings.TRAINED_CHARACTERS_COLLECTION)


# Service dependencies
def get_character_service(
    character_repo: CharacterRepository = Depends(get_character_repository),
    services: StudioServices = Depends(get_services),
    settings: Settings = Depends(get_settings),
) -> CharacterService:
    """Get CharacterService instance."""
    return CharacterService(
        character_repo,
        services.blobs,
        services.inference,
        services.clock,
        max_image_bytes=settings.MAX_IMAGE_BYTES,
    )


def get_training_service(
    repo: TrainedCharacterRepository = Depends(get_trained_character_repository),
    services: StudioServices = Depends(get_services),
    settings: Settings = Depends(get_settings),
) -> TrainingService:
    """Get TrainingService instance."""
    return TrainingService(
        repo,
        services.blobs,
        services.inference,
        services.clock,
        services.scheduler,
        min_images=settings.MIN_TRAINING_IMAGES,
        training_duration_seconds=settings.TRAINING_DURATION_SECONDS,
        signed_url_ttl=timedelta(minutes=settings.SIGNED_URL_TTL_MINUTES),
        max_image_bytes=settings.MAX_IMAGE_BYTES,
        project_id=settings.FIREBASE_PROJECT_ID or "character-studio",
    )


# Authentication dependencies
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: StudioServices = Depends(get_services),
) -> AuthenticatedUser:
    """
    Verify the bearer token and return the caller's identity.

    Raises:
        MissingTokenError: If no bearer token was sent (401)
        InvalidTokenError: If the identity provider rejects it (403)
    """
    if not credentials or not credentials.credentials:
        raise MissingTokenError()

    return await services.verifier.verify(credentials.credentials)
