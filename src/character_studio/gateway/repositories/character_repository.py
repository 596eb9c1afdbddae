"""Character repository with owner-scoped queries."""

from typing import List

from ..models import CharacterRecord, Visualization
from .base import BaseRepository
from .document_store import DocumentStore


class CharacterRepository(BaseRepository[CharacterRecord]):
    """Repository for characters created from analyzed images."""

    def __init__(self, store: DocumentStore, collection: str = "characters"):
        super().__init__(CharacterRecord, store, collection)

    async def get_user_characters(self, user_id: str) -> List[CharacterRecord]:
        """Get characters owned by user, newest first."""
        return await self.get_by_owner(user_id)

    async def append_visualization(
        self, character_id: str, visualization: Visualization
    ) -> Visualization:
        """Append a visualization entry; existing entries are never rewritten."""
        await self.append_item(character_id, "visualizations", visualization)
        return visualization
