"""In-memory stand-ins for the external services, used by the test suite."""

import base64
import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple

from character_studio.gateway.auth import AuthenticatedUser, IdentityVerifier
from character_studio.gateway.core.exceptions import InvalidTokenError
from character_studio.gateway.core.scheduler import Clock, ScheduledHandle, Scheduler
from character_studio.gateway.images import ImagePayload
from character_studio.gateway.inference import CharacterProfile, InferenceClient
from character_studio.gateway.repositories import DocumentStore
from character_studio.gateway.storage import BlobStore

GENERATED_PNG = b"\x89PNG\r\n\x1a\ngenerated-image"


def make_image(tag: str = "a", mime: str = "image/jpeg") -> str:
    """Small distinct image payload as a data URL."""
    data = f"fake-{mime}-{tag}".encode()
    return f"data:{mime};base64,{base64.b64encode(data).decode()}"


class FakeIdentityVerifier(IdentityVerifier):
    """Maps known tokens to user ids; anything else is rejected."""

    def __init__(self, tokens: Dict[str, str]):
        self.tokens = tokens
        self.calls: List[str] = []

    async def verify(self, token: str) -> AuthenticatedUser:
        self.calls.append(token)
        if token not in self.tokens:
            raise InvalidTokenError()
        return AuthenticatedUser(uid=self.tokens[token])


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed document store with call log and failure injection."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.calls: List[Tuple[str, str, str]] = []
        self.fail_on: Dict[str, Exception] = {}

    def _check(self, op: str, collection: str, document_id: str = "") -> None:
        self.calls.append((op, collection, document_id))
        if op in self.fail_on:
            raise self.fail_on[op]

    @property
    def writes(self) -> List[Tuple[str, str, str]]:
        return [c for c in self.calls if c[0] in ("set", "update", "delete", "append")]

    def docs(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self.collections.setdefault(collection, {})

    async def get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        self._check("get", collection, document_id)
        doc = self.docs(collection).get(document_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def set(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        self._check("set", collection, document_id)
        self.docs(collection)[document_id] = copy.deepcopy(data)

    async def update(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        self._check("update", collection, document_id)
        if document_id not in self.docs(collection):
            raise KeyError(f"{collection}/{document_id} does not exist")
        self.docs(collection)[document_id].update(copy.deepcopy(data))

    async def delete(self, collection: str, document_id: str) -> None:
        self._check("delete", collection, document_id)
        self.docs(collection).pop(document_id, None)

    async def query_by_owner(
        self,
        collection: str,
        user_id: str,
        order_by: str = "createdAt",
        descending: bool = True,
    ) -> List[Tuple[str, Dict[str, Any]]]:
        self._check("query", collection)
        rows = [
            (doc_id, copy.deepcopy(doc))
            for doc_id, doc in self.docs(collection).items()
            if doc.get("userId") == user_id
        ]
        rows.sort(key=lambda row: row[1][order_by], reverse=descending)
        return rows

    async def append_to_array(
        self, collection: str, document_id: str, field: str, item: Any
    ) -> None:
        self._check("append", collection, document_id)
        doc = self.docs(collection)[document_id]
        doc.setdefault(field, []).append(copy.deepcopy(item))


class InMemoryBlobStore(BlobStore):
    """Blob store keeping objects in a dict; signed URLs are honored by put_signed."""

    PUBLIC_BASE = "https://storage.test/bucket/"
    UPLOAD_BASE = "https://upload.test/bucket/"

    def __init__(self):
        self.objects: Dict[str, Tuple[bytes, str]] = {}
        self.public: Set[str] = set()
        self.calls: List[Tuple[str, str]] = []
        self.signed: Dict[str, Tuple[str, str, datetime]] = {}
        self.fail_paths: Dict[Tuple[str, str], Exception] = {}
        self.fail_on: Dict[str, Exception] = {}

    def _check(self, op: str, path: str) -> None:
        self.calls.append((op, path))
        if op in self.fail_on:
            raise self.fail_on[op]
        for (failing_op, suffix), error in self.fail_paths.items():
            if failing_op == op and path.endswith(suffix):
                raise error

    @property
    def writes(self) -> List[Tuple[str, str]]:
        return [c for c in self.calls if c[0] in ("upload", "delete", "publish", "sign")]

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        self._check("upload", path)
        self.objects[path] = (data, content_type)
        self.public.add(path)
        return self.public_url(path)

    async def download(self, path: str) -> bytes:
        self._check("download", path)
        return self.objects[path][0]

    async def exists(self, path: str) -> bool:
        self._check("exists", path)
        return path in self.objects

    async def delete(self, path: str) -> None:
        self._check("delete", path)
        if path not in self.objects:
            raise FileNotFoundError(path)
        del self.objects[path]
        self.public.discard(path)

    async def generate_upload_url(self, path: str, content_type: str, ttl: timedelta) -> str:
        self._check("sign", path)
        url = f"{self.UPLOAD_BASE}{path}?signature=fake"
        self.signed[url] = (path, content_type, datetime.now(timezone.utc) + ttl)
        return url

    async def publish(self, path: str) -> str:
        self._check("publish", path)
        if path not in self.objects:
            raise FileNotFoundError(path)
        self.public.add(path)
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return f"{self.PUBLIC_BASE}{path}"

    # What a browser would do with the URLs

    def put_signed(self, url: str, data: bytes, content_type: str) -> None:
        path, expected_type, expires_at = self.signed[url]
        assert content_type == expected_type
        assert datetime.now(timezone.utc) < expires_at
        self.objects[path] = (data, content_type)

    def fetch_public(self, url: str) -> bytes:
        path = url[len(self.PUBLIC_BASE):]
        if path not in self.public:
            raise PermissionError(url)
        return self.objects[path][0]


class FakeInferenceClient(InferenceClient):
    """Returns canned profiles and images; specific calls can be made to fail."""

    def __init__(self):
        self.describe_calls: List[ImagePayload] = []
        self.generate_calls: List[Tuple[str, List[ImagePayload], Optional[str]]] = []
        self.describe_failures: Dict[int, Exception] = {}
        self.generate_error: Optional[Exception] = None

    @property
    def call_count(self) -> int:
        return len(self.describe_calls) + len(self.generate_calls)

    async def describe_character(self, image: ImagePayload) -> CharacterProfile:
        index = len(self.describe_calls)
        self.describe_calls.append(image)
        if index in self.describe_failures:
            raise self.describe_failures[index]
        return CharacterProfile(
            character_name=f"Character {index + 1}",
            description=f"Described from {len(image.data)} bytes",
            keywords=["brave", "mysterious", "caped", "tall", "witty"],
        )

    async def generate_image(
        self,
        prompt: str,
        references: Sequence[ImagePayload],
        model_endpoint: Optional[str] = None,
    ) -> ImagePayload:
        self.generate_calls.append((prompt, list(references), model_endpoint))
        if self.generate_error:
            raise self.generate_error
        return ImagePayload(data=GENERATED_PNG, mime_type="image/png")


class _ManualHandle(ScheduledHandle):
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Clock, Scheduler):
    """Clock and scheduler that only move when the test calls advance()."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.queue: List[Tuple[datetime, int, Callable[[], Awaitable[None]], _ManualHandle]] = []
        self._seq = 0

    def now(self) -> datetime:
        return self.current

    def tick(self, seconds: float = 1.0) -> datetime:
        """Move the clock forward without running callbacks."""
        self.current += timedelta(seconds=seconds)
        return self.current

    def call_later(self, delay_seconds: float, callback) -> ScheduledHandle:
        handle = _ManualHandle()
        self._seq += 1
        self.queue.append(
            (self.current + timedelta(seconds=delay_seconds), self._seq, callback, handle)
        )
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for *_, handle in self.queue if not handle.cancelled)

    async def advance(self, seconds: float) -> None:
        """Move time forward, running every callback that falls due, in order."""
        target = self.current + timedelta(seconds=seconds)
        while True:
            due = sorted(
                (item for item in self.queue if item[0] <= target),
                key=lambda item: (item[0], item[1]),
            )
            if not due:
                break
            item = due[0]
            self.queue.remove(item)
            when, _, callback, handle = item
            self.current = max(self.current, when)
            if not handle.cancelled:
                await callback()
        self.current = target

    async def shutdown(self) -> None:
        for *_, handle in self.queue:
            handle.cancel()
