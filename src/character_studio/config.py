"""Configuration for the Character Studio gateway."""

import sys
from functools import lru_cache
from typing import List, Optional

from loguru import logger
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Gateway configuration settings."""

    PROJECT_NAME: str = "Character Studio"
    ENVIRONMENT: str = "development"

    # Gemini
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_TEXT_MODEL: str = "gemini-2.5-flash"
    GEMINI_IMAGE_MODEL: str = "gemini-2.5-flash-image"

    # Firebase / Google Cloud
    FIREBASE_PROJECT_ID: Optional[str] = None
    STORAGE_BUCKET: str = "character-studio-comics.appspot.com"
    CHARACTERS_COLLECTION: str = "characters"
    TRAINED_CHARACTERS_COLLECTION: str = "trainedCharacters"

    # Local testing only, refused when ENVIRONMENT is production
    AUTH_EMULATOR_BYPASS: bool = False
    BYPASS_USER_ID: str = "local-test-user"

    # Simulated training
    MIN_TRAINING_IMAGES: int = 5
    TRAINING_DURATION_SECONDS: float = 30.0
    SIGNED_URL_TTL_MINUTES: int = 15

    MAX_IMAGE_BYTES: int = 10 * 1024 * 1024

    # HTTP
    CORS_ORIGINS: List[str] = ["*"]
    STATIC_DIR: Optional[str] = None
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in ("production", "prod")


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


def setup_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a single stderr sink at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
