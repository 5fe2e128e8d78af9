"""Supabase Storage client abstraction.

Provides a clean interface for the read side of project-file storage:
- Object existence checks
- Whole-object download (extraction needs the complete byte string)

Uploads happen in the browser before the pipeline runs, so this client
never writes. All methods receive the full storage path directly.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from parley.config import Settings
from parley.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ObjectMetadata:
    """Storage object metadata.

    Advisory only - the declared media type on the file record wins.
    """

    content_type: str
    size_bytes: int


class StorageError(Exception):
    """Storage operation error."""

    def __init__(self, message: str, code: str = "E_STORAGE_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code


class StorageClientBase(ABC):
    """Abstract base class for storage client implementations."""

    @abstractmethod
    def head_object(self, path: str) -> ObjectMetadata | None:
        """Check if object exists and get metadata.

        Args:
            path: Full storage path.

        Returns:
            ObjectMetadata if object exists, None otherwise.
        """
        ...

    @abstractmethod
    def download_object(self, path: str) -> bytes:
        """Download the complete object content.

        Args:
            path: Full storage path (e.g. "{user_id}/{project_id}/{name}").

        Returns:
            The raw bytes of the object.

        Raises:
            StorageError: E_STORAGE_MISSING if absent, E_STORAGE_ERROR otherwise.
        """
        ...


class StorageClient(StorageClientBase):
    """Production Supabase Storage client.

    Uses httpx for HTTP operations against Supabase Storage API.
    """

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        bucket: str = "project-files",
        timeout_s: float = 60.0,
    ):
        """Initialize the storage client.

        Args:
            supabase_url: Supabase project URL (e.g., https://xxx.supabase.co).
            service_key: Supabase service role key.
            bucket: Storage bucket name.
            timeout_s: Per-request timeout for downloads.
        """
        self._base_url = supabase_url.rstrip("/")
        self._bucket = bucket
        self._timeout_s = timeout_s
        self._storage_url = f"{self._base_url}/storage/v1"
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def _object_url(self, path: str) -> str:
        return f"{self._storage_url}/object/{self._bucket}/{path.lstrip('/')}"

    def head_object(self, path: str) -> ObjectMetadata | None:
        """Check object existence via HEAD request."""
        with httpx.Client() as client:
            response = client.head(self._object_url(path), headers=self._headers, timeout=30.0)

            if response.status_code != 200:
                # 404 and any other failure both read as "doesn't exist"
                return None

            content_type = response.headers.get("content-type", "application/octet-stream")
            content_length = response.headers.get("content-length", "0")

            return ObjectMetadata(
                content_type=content_type,
                size_bytes=int(content_length),
            )

    def download_object(self, path: str) -> bytes:
        """Download object content via authenticated GET request."""
        try:
            with httpx.Client() as client:
                response = client.get(
                    self._object_url(path), headers=self._headers, timeout=self._timeout_s
                )
        except httpx.HTTPError as e:
            logger.warning("storage.download.transport_error", error_type=type(e).__name__)
            raise StorageError(f"Failed to download object: {type(e).__name__}") from e

        if response.status_code in (400, 404):
            # Supabase reports missing objects as 400 with a not_found body
            raise StorageError(f"Object not found: {path}", code="E_STORAGE_MISSING")

        if response.status_code != 200:
            raise StorageError(
                f"Failed to download object: {response.status_code}",
                code="E_STORAGE_ERROR",
            )

        return response.content


class FakeStorageClient(StorageClientBase):
    """Fake storage client for testing without real Supabase.

    Stores files in memory and counts downloads so tests can assert that
    cached extractions never touch storage.
    """

    def __init__(self):
        self._objects: dict[str, tuple[bytes, str]] = {}  # path -> (content, content_type)
        self.download_count = 0

    def head_object(self, path: str) -> ObjectMetadata | None:
        """Check if fake object exists."""
        if path not in self._objects:
            return None
        content, content_type = self._objects[path]
        return ObjectMetadata(content_type=content_type, size_bytes=len(content))

    def download_object(self, path: str) -> bytes:
        """Return fake object content."""
        self.download_count += 1
        if path not in self._objects:
            raise StorageError(f"Object not found: {path}", code="E_STORAGE_MISSING")
        return self._objects[path][0]

    # Test helper methods

    def put_object(self, path: str, content: bytes, content_type: str = "text/plain") -> None:
        """Store an object directly (test helper)."""
        self._objects[path] = (content, content_type)

    def clear(self) -> None:
        """Clear all stored objects and counters (test helper)."""
        self._objects.clear()
        self.download_count = 0


def get_storage_client(settings: Settings) -> StorageClientBase:
    """Build the storage client for the configured environment.

    Returns:
        StorageClient if Supabase credentials are configured,
        FakeStorageClient otherwise (local dev / tests).
    """
    if settings.uses_real_storage:
        return StorageClient(
            supabase_url=settings.supabase_url,  # type: ignore[arg-type]
            service_key=settings.supabase_service_key,  # type: ignore[arg-type]
            bucket=settings.storage_bucket,
        )

    logger.info("storage.fake_client_selected", env=settings.parley_env.value)
    return FakeStorageClient()
