"""API v1 endpoints."""

from .characters import router as characters_router
from .training import router as training_router

__all__ = [
    "characters_router",
    "training_router",
]
