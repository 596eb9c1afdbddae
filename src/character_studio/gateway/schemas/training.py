"""Schemas for the batch-training flow."""

from typing import List

from pydantic import Field

from .common import CamelModel


class UploadFileSpec(CamelModel):
    """A file the client intends to upload directly to blob storage."""
    file_name: str = Field(..., min_length=1)
    content_type: str = "image/jpeg"


class SignedUploadUrlsRequest(CamelModel):
    """Phase one of the two-phase upload."""
    character_name: str = Field(..., min_length=1)
    files: List[UploadFileSpec]


class SignedUpload(CamelModel):
    """Where and how to upload one file."""
    file_name: str
    path: str
    upload_url: str
    public_url: str
    content_type: str


class SignedUploadUrlsResponse(CamelModel):
    """Record created in 'uploading' state plus one signed URL per file."""
    character_id: str
    uploads: List[SignedUpload]
    expires_in_seconds: int


class ConfirmUploadsRequest(CamelModel):
    """Phase two: all direct uploads have finished."""
    character_id: str = Field(..., min_length=1)


class StartTrainingRequest(CamelModel):
    """Inline variant: name plus every image as a data URL or base64."""
    character_name: str = Field(..., min_length=1)
    images: List[str]
