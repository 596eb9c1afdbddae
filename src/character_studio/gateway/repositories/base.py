"""Base repository pattern for all data access."""

from typing import Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel

from ..models import DocumentModel
from .document_store import DocumentStore

ModelType = TypeVar("ModelType", bound=DocumentModel)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common CRUD operations over one collection.

    All repositories should inherit from this class.
    """

    def __init__(self, model: Type[ModelType], store: DocumentStore, collection: str):
        """
        Initialize repository.

        Args:
            model: Record model stored in the collection
            store: Document store backend
            collection: Collection name
        """
        self.model = model
        self.store = store
        self.collection = collection

    async def get(self, id: str) -> Optional[ModelType]:
        """Get single record by ID."""
        data = await self.store.get(self.collection, id)
        if data is None:
            return None
        return self.model.from_document(id, data)

    async def get_by_owner(self, user_id: str) -> List[ModelType]:
        """Get all records owned by a user, newest first."""
        rows = await self.store.query_by_owner(
            self.collection, user_id, order_by="createdAt", descending=True
        )
        return [self.model.from_document(doc_id, data) for doc_id, data in rows]

    async def create(self, instance: ModelType) -> ModelType:
        """Create new record."""
        await self.store.set(self.collection, instance.id, instance.to_document())
        return instance

    async def update(self, id: str, **data) -> Optional[ModelType]:
        """Update existing record. Keyword names are record field names."""
        instance = await self.get(id)
        if not instance:
            return None

        updated = instance.model_copy(update=data)
        document = updated.to_document()
        aliases = {name: field.alias or name for name, field in self.model.model_fields.items()}
        await self.store.update(
            self.collection, id, {aliases[key]: document[aliases[key]] for key in data}
        )
        return updated

    async def delete(self, id: str) -> bool:
        """Delete record (hard delete)."""
        if not await self.exists(id):
            return False

        await self.store.delete(self.collection, id)
        return True

    async def exists(self, id: str) -> bool:
        """Check if record exists."""
        return await self.store.get(self.collection, id) is not None

    async def append_item(self, id: str, field: str, item: BaseModel) -> None:
        """Append a sub-record to an array field."""
        await self.store.append_to_array(
            self.collection, id, field, item.model_dump(by_alias=True)
        )
