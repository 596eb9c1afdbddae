"""Trained character repository and status transitions."""

from datetime import datetime
from typing import List

from ..core.exceptions import InvalidStatusTransitionError, ResourceNotFoundError
from ..models import TrainedCharacterRecord, TrainingStatus, Visualization
from .base import BaseRepository
from .document_store import DocumentStore


class TrainedCharacterRepository(BaseRepository[TrainedCharacterRecord]):
    """Repository for batch-trained characters."""

    def __init__(self, store: DocumentStore, collection: str = "trainedCharacters"):
        super().__init__(TrainedCharacterRecord, store, collection)

    async def get_user_characters(self, user_id: str) -> List[TrainedCharacterRecord]:
        """Get trained characters owned by user, newest first."""
        return await self.get_by_owner(user_id)

    async def set_status(
        self,
        character_id: str,
        status: TrainingStatus,
        updated_at: datetime,
        **fields,
    ) -> TrainedCharacterRecord:
        """
        Move a record to ``status``, writing any extra fields alongside.

        Raises:
            ResourceNotFoundError: If the record does not exist
            InvalidStatusTransitionError: If the state machine forbids the move
        """
        record = await self.get(character_id)
        if not record:
            raise ResourceNotFoundError("Character", character_id)

        if not record.status.can_transition_to(status):
            raise InvalidStatusTransitionError(record.status.value, status.value)

        return await self.update(
            character_id, status=status, updated_at=updated_at, **fields
        )

    async def append_visualization(
        self, character_id: str, visualization: Visualization
    ) -> Visualization:
        """Append a visualization entry; existing entries are never rewritten."""
        await self.append_item(character_id, "visualizations", visualization)
        return visualization
