"""Authentication gate.

Every protected request carries ``Authorization: Bearer <Firebase ID token>``.
The token is verified against Firebase Auth before any business logic runs.

For local testing the verifier can be replaced by a bypass that maps every
token to one fixed identity. The bypass is refused in production.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from firebase_admin import App
from firebase_admin import auth as firebase_auth
from loguru import logger
from pydantic import BaseModel, Field

from ..config import Settings
from .core.exceptions import ConfigurationError, InvalidTokenError


class AuthenticatedUser(BaseModel):
    """Identity attached to a verified request."""
    uid: str
    email: Optional[str] = None
    claims: Dict[str, Any] = Field(default_factory=dict)


class IdentityVerifier(ABC):
    """Turns a bearer token into a user identity."""

    @abstractmethod
    async def verify(self, token: str) -> AuthenticatedUser:
        """
        Verify ``token``.

        Raises:
            InvalidTokenError: If the identity provider rejects the token
        """


class FirebaseIdentityVerifier(IdentityVerifier):
    """Verifies Firebase ID tokens with the Admin SDK."""

    def __init__(self, app: Optional[App] = None, check_revoked: bool = False):
        self.app = app
        self.check_revoked = check_revoked

    async def verify(self, token: str) -> AuthenticatedUser:
        try:
            decoded = await asyncio.to_thread(
                firebase_auth.verify_id_token,
                token,
                app=self.app,
                check_revoked=self.check_revoked,
            )
        except Exception as e:
            logger.warning(f"Error verifying Firebase ID token: {e}")
            raise InvalidTokenError()

        return AuthenticatedUser(
            uid=decoded["uid"],
            email=decoded.get("email"),
            claims=decoded,
        )


class BypassIdentityVerifier(IdentityVerifier):
    """Accepts any token as a fixed test identity. Local testing only."""

    def __init__(self, user_id: str):
        self.user_id = user_id

    async def verify(self, token: str) -> AuthenticatedUser:
        return AuthenticatedUser(uid=self.user_id, claims={"bypass": True})


def build_identity_verifier(settings: Settings, app: Optional[App] = None) -> IdentityVerifier:
    """
    Pick the verifier for the current settings.

    Raises:
        ConfigurationError: If the bypass is requested in production
    """
    if settings.AUTH_EMULATOR_BYPASS:
        if settings.is_production:
            raise ConfigurationError("AUTH_EMULATOR_BYPASS cannot be enabled in production")
        logger.warning(
            f"Authentication BYPASSED - every request runs as '{settings.BYPASS_USER_ID}'"
        )
        return BypassIdentityVerifier(settings.BYPASS_USER_ID)
    return FirebaseIdentityVerifier(app)

