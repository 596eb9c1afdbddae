"""Unit tests for the Firestore and Cloud Storage adapters with mocked SDK objects."""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from google.cloud import firestore

from character_studio.gateway.repositories import FirestoreDocumentStore
from character_studio.gateway.storage import GcsBlobStore, blob_path


def test_blob_path_layout():
    assert blob_path("training", "alice", "c1", "00-a.jpg") == "training/alice/c1/00-a.jpg"


# ============================================================================
# Firestore
# ============================================================================

def _firestore_client(snapshot=None, stream_rows=()):
    ref = MagicMock()
    ref.get = AsyncMock(return_value=snapshot)
    ref.set = AsyncMock()
    ref.update = AsyncMock()
    ref.delete = AsyncMock()

    async def stream():
        for doc_id, data in stream_rows:
            yield SimpleNamespace(id=doc_id, to_dict=lambda data=data: data)

    query = MagicMock()
    query.order_by.return_value = query
    query.stream = stream

    collection = MagicMock()
    collection.document.return_value = ref
    collection.where.return_value = query

    client = MagicMock()
    client.collection.return_value = collection
    return client, collection, ref, query


class TestFirestoreDocumentStore:
    """Test calls made against the async Firestore client."""

    async def test_get_existing_and_missing(self):
        snapshot = SimpleNamespace(exists=True, to_dict=lambda: {"userId": "alice"})
        client, collection, _, _ = _firestore_client(snapshot=snapshot)

        assert await FirestoreDocumentStore(client).get("characters", "c1") == {"userId": "alice"}
        client.collection.assert_called_with("characters")
        collection.document.assert_called_with("c1")

        client, _, _, _ = _firestore_client(snapshot=SimpleNamespace(exists=False))
        assert await FirestoreDocumentStore(client).get("characters", "c1") is None

    async def test_writes(self):
        client, _, ref, _ = _firestore_client()
        store = FirestoreDocumentStore(client)

        await store.set("characters", "c1", {"a": 1})
        await store.update("characters", "c1", {"b": 2})
        await store.delete("characters", "c1")

        ref.set.assert_awaited_once_with({"a": 1})
        ref.update.assert_awaited_once_with({"b": 2})
        ref.delete.assert_awaited_once()

    async def test_query_by_owner(self):
        rows = [("new", {"userId": "alice"}), ("old", {"userId": "alice"})]
        client, collection, _, query = _firestore_client(stream_rows=rows)

        result = await FirestoreDocumentStore(client).query_by_owner("characters", "alice")

        assert result == rows
        field_filter = collection.where.call_args.kwargs["filter"]
        assert (field_filter.field_path, field_filter.op_string, field_filter.value) == (
            "userId",
            "==",
            "alice",
        )
        query.order_by.assert_called_once_with("createdAt", direction=firestore.Query.DESCENDING)

    async def test_append_uses_array_union(self):
        client, _, ref, _ = _firestore_client()

        await FirestoreDocumentStore(client).append_to_array(
            "characters", "c1", "visualizations", {"id": "v1"}
        )

        update = ref.update.await_args.args[0]
        assert isinstance(update["visualizations"], firestore.ArrayUnion)
        assert update["visualizations"].values == [{"id": "v1"}]


# ============================================================================
# Cloud Storage
# ============================================================================

def _bucket():
    blob = MagicMock()
    blob.public_url = "https://storage.googleapis.com/bucket/some/path.jpg"
    blob.exists.return_value = True
    blob.download_as_bytes.return_value = b"bytes"
    blob.generate_signed_url.return_value = "https://signed.test/put"

    bucket = MagicMock()
    bucket.name = "bucket"
    bucket.blob.return_value = blob
    return bucket, blob


class TestGcsBlobStore:
    """Test calls made against the bucket."""

    async def test_upload_makes_object_public(self):
        bucket, blob = _bucket()

        url = await GcsBlobStore(bucket).upload("some/path.jpg", b"data", "image/jpeg")

        bucket.blob.assert_called_with("some/path.jpg")
        blob.upload_from_string.assert_called_once_with(b"data", content_type="image/jpeg")
        blob.make_public.assert_called_once()
        assert url == blob.public_url

    async def test_read_and_delete(self):
        bucket, blob = _bucket()
        store = GcsBlobStore(bucket)

        assert await store.download("p") == b"bytes"
        assert await store.exists("p") is True
        await store.delete("p")
        blob.delete.assert_called_once()

    async def test_signed_upload_url(self):
        bucket, blob = _bucket()

        url = await GcsBlobStore(bucket).generate_upload_url(
            "training/a/c/00-x.png", "image/png", timedelta(minutes=15)
        )

        assert url == "https://signed.test/put"
        blob.generate_signed_url.assert_called_once_with(
            version="v4",
            expiration=timedelta(minutes=15),
            method="PUT",
            content_type="image/png",
        )

    async def test_publish(self):
        bucket, blob = _bucket()
        assert await GcsBlobStore(bucket).publish("p") == blob.public_url
        blob.make_public.assert_called_once()
