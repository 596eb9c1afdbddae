"""Construction of the external-service clients used by request handlers."""

from dataclasses import dataclass, field

import firebase_admin
from firebase_admin import firestore_async
from firebase_admin import storage as firebase_storage
from google import genai
from loguru import logger

from ..config import Settings
from .auth import IdentityVerifier, build_identity_verifier
from .core.exceptions import ConfigurationError
from .core.scheduler import AsyncioScheduler, Clock, Scheduler, SystemClock
from .inference import GeminiInferenceClient, InferenceClient
from .repositories import DocumentStore, FirestoreDocumentStore
from .storage import BlobStore, GcsBlobStore


@dataclass
class StudioServices:
    """Everything a request handler may talk to, injected via app.state."""
    verifier: IdentityVerifier
    store: DocumentStore
    blobs: BlobStore
    inference: InferenceClient
    clock: Clock = field(default_factory=SystemClock)
    scheduler: Scheduler = field(default_factory=AsyncioScheduler)


def _firebase_app(settings: Settings) -> firebase_admin.App:
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = {"storageBucket": settings.STORAGE_BUCKET}
        if settings.FIREBASE_PROJECT_ID:
            options["projectId"] = settings.FIREBASE_PROJECT_ID
        logger.info(f"Initializing Firebase Admin (bucket={settings.STORAGE_BUCKET})")
        return firebase_admin.initialize_app(options=options)


def build_services(settings: Settings) -> StudioServices:
    """
    Build the production clients.

    Raises:
        ConfigurationError: If required settings are missing or unsafe
    """
    if not settings.GEMINI_API_KEY:
        raise ConfigurationError("GEMINI_API_KEY environment variable not set.")

    app = _firebase_app(settings)

    return StudioServices(
        verifier=build_identity_verifier(settings, app),
        store=FirestoreDocumentStore(firestore_async.client(app)),
        blobs=GcsBlobStore(firebase_storage.bucket(settings.STORAGE_BUCKET, app=app)),
        inference=GeminiInferenceClient(
            genai.Client(api_key=settings.GEMINI_API_KEY),
            text_model=settings.GEMINI_TEXT_MODEL,
            image_model=settings.GEMINI_IMAGE_MODEL,
        ),
    )
