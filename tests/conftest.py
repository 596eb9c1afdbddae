"""Pytest configuration and shared fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from character_studio.config import Settings
from character_studio.gateway.container import StudioServices
from character_studio.gateway.server import create_app

from tests.fakes import (
    FakeIdentityVerifier,
    FakeInferenceClient,
    InMemoryBlobStore,
    InMemoryDocumentStore,
    ManualScheduler,
)

TOKENS = {"alice-token": "alice", "bob-token": "bob"}


# ============================================================================
# Fake Services
# ============================================================================

@pytest.fixture
def settings():
    """Settings that never read the developer's .env file."""
    return Settings(GEMINI_API_KEY="test-key", _env_file=None)


@pytest.fixture
def scheduler():
    """Manually advanced clock and scheduler."""
    return ManualScheduler()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def blobs():
    return InMemoryBlobStore()


@pytest.fixture
def inference():
    return FakeInferenceClient()


@pytest.fixture
def verifier():
    return FakeIdentityVerifier(dict(TOKENS))


@pytest.fixture
def services(verifier, store, blobs, inference, scheduler):
    return StudioServices(
        verifier=verifier,
        store=store,
        blobs=blobs,
        inference=inference,
        clock=scheduler,
        scheduler=scheduler,
    )


# ============================================================================
# HTTP
# ============================================================================

@pytest.fixture
def app(settings, services):
    return create_app(settings, services)


@pytest.fixture
async def client(app):
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def alice():
    return {"Authorization": "Bearer alice-token"}


@pytest.fixture
def bob():
    return {"Authorization": "Bearer bob-token"}
