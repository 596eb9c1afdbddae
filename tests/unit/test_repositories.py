"""Unit tests for the character repositories over an in-memory document store."""

from datetime import datetime, timedelta, timezone

import pytest

from character_studio.gateway.core.exceptions import (
    InvalidStatusTransitionError,
    ResourceNotFoundError,
)
from character_studio.gateway.models import (
    CharacterRecord,
    TrainedCharacterRecord,
    TrainingStatus,
    Visualization,
)
from character_studio.gateway.repositories import (
    CharacterRepository,
    TrainedCharacterRepository,
)
from tests.fakes import InMemoryDocumentStore

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _character(id, user_id="alice", minutes=0):
    return CharacterRecord(
        id=id,
        user_id=user_id,
        character_name=id.upper(),
        created_at=NOW + timedelta(minutes=minutes),
    )


def _trained(id, status=TrainingStatus.UPLOADING):
    return TrainedCharacterRecord(
        id=id,
        user_id="alice",
        character_name=id,
        status=status,
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def store():
    return InMemoryDocumentStore()


class TestCharacterRepository:
    """Test CRUD and listing."""

    async def test_create_and_get(self, store):
        repo = CharacterRepository(store)
        await repo.create(_character("c1"))

        assert store.docs("characters")["c1"]["userId"] == "alice"
        assert (await repo.get("c1")).character_name == "C1"
        assert await repo.get("missing") is None

    async def test_user_characters_newest_first_and_scoped(self, store):
        repo = CharacterRepository(store)
        await repo.create(_character("old", minutes=0))
        await repo.create(_character("new", minutes=5))
        await repo.create(_character("other", user_id="bob", minutes=10))

        characters = await repo.get_user_characters("alice")

        assert [c.id for c in characters] == ["new", "old"]

    async def test_update_writes_only_changed_fields(self, store):
        repo = CharacterRepository(store)
        await repo.create(_character("c1"))

        updated = await repo.update("c1", description="tall")

        assert updated.description == "tall"
        assert store.calls[-1] == ("update", "characters", "c1")
        assert await repo.update("missing", description="x") is None

    async def test_delete(self, store):
        repo = CharacterRepository(store)
        await repo.create(_character("c1"))

        assert await repo.delete("c1") is True
        assert await repo.delete("c1") is False
        assert not await repo.exists("c1")

    async def test_append_visualization_keeps_existing_entries(self, store):
        repo = CharacterRepository(store)
        await repo.create(_character("c1"))
        first = Visualization(id="v1", image_url="u1", image_path="p1", prompt="a", created_at=NOW)
        second = Visualization(id="v2", image_url="u2", image_path="p2", prompt="b", created_at=NOW)

        await repo.append_visualization("c1", first)
        await repo.append_visualization("c1", second)

        record = await repo.get("c1")
        assert [v.id for v in record.visualizations] == ["v1", "v2"]
        assert store.docs("characters")["c1"]["visualizations"][0]["imageUrl"] == "u1"

    async def test_custom_collection(self, store):
        repo = CharacterRepository(store, "people")
        await repo.create(_character("c1"))
        assert "c1" in store.docs("people")


class TestTrainedCharacterRepository:
    """Test status transitions."""

    async def test_set_status_follows_state_machine(self, store):
        repo = TrainedCharacterRepository(store)
        await repo.create(_trained("t1"))
        later = NOW + timedelta(seconds=30)

        record = await repo.set_status("t1", TrainingStatus.TRAINING, updated_at=later)
        assert record.status is TrainingStatus.TRAINING
        assert store.docs("trainedCharacters")["t1"]["status"] == "training"

        record = await repo.set_status(
            "t1", TrainingStatus.READY, updated_at=later, model_endpoint="projects/p/endpoints/x"
        )
        assert record.model_endpoint == "projects/p/endpoints/x"
        assert store.docs("trainedCharacters")["t1"]["modelEndpoint"] == "projects/p/endpoints/x"
        assert store.docs("trainedCharacters")["t1"]["updatedAt"] == later

    async def test_set_status_rejects_invalid_transition(self, store):
        repo = TrainedCharacterRepository(store)
        await repo.create(_trained("t1", status=TrainingStatus.READY))

        with pytest.raises(InvalidStatusTransitionError):
            await repo.set_status("t1", TrainingStatus.TRAINING, updated_at=NOW)

        assert store.docs("trainedCharacters")["t1"]["status"] == "ready"

    async def test_set_status_missing_record(self, store):
        repo = TrainedCharacterRepository(store)
        with pytest.raises(ResourceNotFoundError):
            await repo.set_status("nope", TrainingStatus.FAILED, updated_at=NOW)
