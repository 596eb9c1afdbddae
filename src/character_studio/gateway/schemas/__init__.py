"""Pydantic schemas for gateway request/response models."""

from .common import CamelModel, GeneratedImageResponse, HealthResponse
from .character import (
    CharacterIdRequest,
    CreateCharacterPairRequest,
    GenerateVisualizationRequest,
    SaveVisualizationRequest,
)
from .training import (
    ConfirmUploadsRequest,
    SignedUpload,
    SignedUploadUrlsRequest,
    SignedUploadUrlsResponse,
    StartTrainingRequest,
    UploadFileSpec,
)

__all__ = [
    "CamelModel",
    "GeneratedImageResponse",
    "HealthResponse",
    "CharacterIdRequest",
    "CreateCharacterPairRequest",
    "GenerateVisualizationRequest",
    "SaveVisualizationRequest",
    "ConfirmUploadsRequest",
    "SignedUpload",
    "SignedUploadUrlsRequest",
    "SignedUploadUrlsResponse",
    "StartTrainingRequest",
    "UploadFileSpec",
]
