"""Service layer for business logic."""

from .character_service import CharacterService
from .training_service import TrainingService

__all__ = [
    "CharacterService",
    "TrainingService",
]
