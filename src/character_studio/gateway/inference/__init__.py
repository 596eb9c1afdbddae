"""Generative model clients."""

from .gemini_client import (
    CharacterProfile,
    GeminiInferenceClient,
    InferenceClient,
    first_inline_image,
)

__all__ = [
    "CharacterProfile",
    "GeminiInferenceClient",
    "InferenceClient",
    "first_inline_image",
]
