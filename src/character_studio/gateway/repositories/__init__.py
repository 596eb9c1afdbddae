"""Repository layer for data access."""

from .base import BaseRepository
from .document_store import DocumentStore, FirestoreDocumentStore
from .character_repository import CharacterRepository
from .trained_character_repository import TrainedCharacterRepository

__all__ = [
    "BaseRepository",
    "DocumentStore",
    "FirestoreDocumentStore",
    "CharacterRepository",
    "TrainedCharacterRepository",
]
