"""Document models for the character collections."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Base for records stored as documents; field names are camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str

    def to_document(self) -> Dict[str, Any]:
        """Fields as stored in the collection (the id is the document key)."""
        return self.model_dump(by_alias=True, exclude={"id"})

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]):
        return cls.model_validate({**data, "id": doc_id})


class Visualization(BaseModel):
    """A saved AI-generated image of a character."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    image_url: str
    image_path: str
    prompt: str
    created_at: datetime


class CharacterRecord(DocumentModel):
    """Character created from a single analyzed image."""

    user_id: str
    character_name: str
    description: str = ""
    keywords: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    image_path: Optional[str] = None
    created_at: datetime
    visualizations: List[Visualization] = Field(default_factory=list)


class TrainingStatus(str, Enum):
    """
    Lifecycle of a trained character.

    uploading -> training -> ready, with failed reachable from any
    non-terminal state.
    """
    UPLOADING = "uploading"
    TRAINING = "training"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TrainingStatus.READY, TrainingStatus.FAILED)

    def can_transition_to(self, target: "TrainingStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS = {
    TrainingStatus.UPLOADING: {TrainingStatus.TRAINING, TrainingStatus.FAILED},
    TrainingStatus.TRAINING: {TrainingStatus.READY, TrainingStatus.FAILED},
    TrainingStatus.READY: set(),
    TrainingStatus.FAILED: set(),
}


class TrainedCharacterRecord(DocumentModel):
    """Character built from a batch of reference images and a (simulated) training job."""

    user_id: str
    character_name: str
    status: TrainingStatus = TrainingStatus.UPLOADING
    image_paths: List[str] = Field(default_factory=list)
    image_content_types: List[str] = Field(default_factory=list)
    image_urls: List[str] = Field(default_factory=list)
    model_endpoint: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    visualizations: List[Visualization] = Field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        document = super().to_document()
        document["status"] = self.status.value
        return document
