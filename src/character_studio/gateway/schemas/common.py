"""Shared schema bits."""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request/response model whose JSON keys are camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    """Schema for health check response."""
    status: str = "ok"
    service: str = "character-studio-gateway"
    version: str


class GeneratedImageResponse(CamelModel):
    """Freshly generated image, not persisted."""
    base64_image: str
    mime_type: str
    model_endpoint: Optional[str] = None
