"""Document store interface and its Firestore implementation."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from loguru import logger

Document = Dict[str, Any]


class DocumentStore(ABC):
    """
    Minimal document-database contract used by the repositories.

    Documents are plain dicts keyed by ``(collection, document_id)``.
    """

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        """Return the document, or None if it does not exist."""

    @abstractmethod
    async def set(self, collection: str, document_id: str, data: Document) -> None:
        """Create or overwrite a document."""

    @abstractmethod
    async def update(self, collection: str, document_id: str, data: Document) -> None:
        """Merge ``data`` into an existing document."""

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> None:
        """Delete a document; deleting a missing document is not an error."""

    @abstractmethod
    async def query_by_owner(
        self,
        collection: str,
        user_id: str,
        order_by: str = "createdAt",
        descending: bool = True,
    ) -> List[Tuple[str, Document]]:
        """Return ``(id, document)`` pairs whose ``userId`` equals ``user_id``."""

    @abstractmethod
    async def append_to_array(
        self, collection: str, document_id: str, field: str, item: Any
    ) -> None:
        """Append ``item`` to the array ``field`` without rewriting the document."""


class FirestoreDocumentStore(DocumentStore):
    """DocumentStore backed by the Firestore async client."""

    def __init__(self, client: firestore.AsyncClient):
        self.client = client

    def _ref(self, collection: str, document_id: str):
        return self.client.collection(collection).document(document_id)

    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        snapshot = await self._ref(collection, document_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    async def set(self, collection: str, document_id: str, data: Document) -> None:
        await self._ref(collection, document_id).set(data)

    async def update(self, collection: str, document_id: str, data: Document) -> None:
        await self._ref(collection, document_id).update(data)

    async def delete(self, collection: str, document_id: str) -> None:
        await self._ref(collection, document_id).delete()
        logger.debug(f"Deleted {collection}/{document_id}")

    async def query_by_owner(
        self,
        collection: str,
        user_id: str,
        order_by: str = "createdAt",
        descending: bool = True,
    ) -> List[Tuple[str, Document]]:
        direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
        query = (
            self.client.collection(collection)
            .where(filter=FieldFilter("userId", "==", user_id))
            .order_by(order_by, direction=direction)
        )
        return [(snapshot.id, snapshot.to_dict()) async for snapshot in query.stream()]

    async def append_to_array(
        self, collection: str, document_id: str, field: str, item: Any
    ) -> None:
        await self._ref(collection, document_id).update(
            {field: firestore.ArrayUnion([item])}
        )
