"""HTTP client for the Character Studio gateway.

Mirrors the calls the web UI makes: every endpoint is a JSON POST with the
caller's Firebase ID token as a bearer credential.

Example:
    >>> async with StudioClient("http://localhost:8080", token) as client:
    ...     library = await client.get_character_library()
"""

from typing import Any, Dict, List, Optional, Sequence

import httpx


class StudioClientError(Exception):
    """Non-2xx response from the gateway."""

    def __init__(self, status_code: int, text: str):
        self.status_code = status_code
        self.text = text
        super().__init__(f"API call failed: {status_code} {text}")


class StudioClient:
    """Async client for the gateway's POST endpoints."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self._transport = transport
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "StudioClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def call(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._client.post(
            endpoint,
            json=body or {},
            headers={"Authorization": f"Bearer {self.token}"},
        )
        if response.is_error:
            raise StudioClientError(response.status_code, response.text)
        return response.json()

    # Characters

    async def get_character_library(self) -> List[Dict[str, Any]]:
        return await self.call("/getCharacterLibrary")

    async def get_character_by_id(self, character_id: str) -> Dict[str, Any]:
        return await self.call("/getCharacterById", {"characterId": character_id})

    async def create_character_pair(self, char_a: str, char_b: str) -> List[Dict[str, Any]]:
        return await self.call("/createCharacterPair", {"charA": char_a, "charB": char_b})

    async def generate_character_visualization(
        self, character_id: str, prompt: str
    ) -> Dict[str, Any]:
        return await self.call(
            "/generateCharacterVisualization",
            {"characterId": character_id, "prompt": prompt},
        )

    async def save_visualization(
        self, character_id: str, prompt: str, image: str
    ) -> Dict[str, Any]:
        return await self.call(
            "/saveVisualization",
            {"characterId": character_id, "prompt": prompt, "image": image},
        )

    # Trained characters

    async def get_signed_upload_urls(
        self, character_name: str, files: Sequence[Dict[str, str]]
    ) -> Dict[str, Any]:
        return await self.call(
            "/getSignedUploadUrls",
            {"characterName": character_name, "files": list(files)},
        )

    async def upload_to_signed_url(self, upload_url: str, data: bytes, content_type: str) -> None:
        """PUT bytes to a signed URL; no bearer token is sent."""
        async with httpx.AsyncClient(
            timeout=self._client.timeout, transport=self._transport
        ) as raw:
            response = await raw.put(upload_url, content=data, headers={"Content-Type": content_type})
        if response.is_error:
            raise StudioClientError(response.status_code, response.text)

    async def confirm_training_uploads(self, character_id: str) -> Dict[str, Any]:
        return await self.call("/confirmTrainingUploads", {"characterId": character_id})

    async def start_character_training(
        self, character_name: str, images: Sequence[str]
    ) -> Dict[str, Any]:
        return await self.call(
            "/startCharacterTraining",
            {"characterName": character_name, "images": list(images)},
        )

    async def get_trained_character_library(self) -> List[Dict[str, Any]]:
        return await self.call("/getTrainedCharacterLibrary")

    async def get_trained_character_by_id(self, character_id: str) -> Dict[str, Any]:
        return await self.call("/getTrainedCharacterById", {"characterId": character_id})

    async def generate_trained_character_image(
        self, character_id: str, prompt: str
    ) -> Dict[str, Any]:
        return await self.call(
            "/generateTrainedCharacterImage",
            {"characterId": character_id, "prompt": prompt},
        )

    async def save_trained_character_visualization(
        self, character_id: str, prompt: str, image: str
    ) -> Dict[str, Any]:
        return await self.call(
            "/saveTrainedCharacterVisualization",
            {"characterId": character_id, "prompt": prompt, "image": image},
        )
