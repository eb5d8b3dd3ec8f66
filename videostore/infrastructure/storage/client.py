"""
Object storage client for uploaded videos.

Supports Google Cloud Storage and S3-compatible services (AWS S3,
Cloudflare R2, MinIO) behind one capability set: put, list, list_sorted,
head_exists and delete. The provider is picked at startup by
configuration; route handlers only ever see the StorageBackend protocol.

Mock mode keeps objects in memory, enabling API testing without
provisioning a bucket.
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO, Callable, Optional, Protocol, TypeVar

from ...core.errors import (
    BackendError,
    BackendTimeoutError,
    NotFoundError,
    VideoStoreError,
)
from ...core.models import StoredObject, sort_newest_first

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class StorageConfig:
    """
    Configuration shared by every storage backend.

    Provider-specific fields are ignored by backends that don't need them.
    """
    bucket_name: str
    public_base_url: str
    timeout_seconds: float = 30.0
    upload_timeout_seconds: float = 3600.0
    max_retries: int = 2
    retry_backoff_seconds: float = 0.5

    # S3-compatible
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    region: Optional[str] = None
    endpoint_url: Optional[str] = None

    # Google Cloud Storage
    credentials_file: Optional[str] = None
    project: Optional[str] = None


class StorageBackend(Protocol):
    """
    Protocol for object storage operations.

    Using a protocol means tests can provide fakes and we can
    swap storage providers without changing dependent code.
    """

    def public_url(self, name: str) -> str:
        """Deterministic public URL of an object."""
        ...

    async def put(
        self,
        name: str,
        content_type: str,
        stream: BinaryIO,
        size: int,
    ) -> str:
        """Store bytes under name (overwriting) and return the public URL."""
        ...

    async def put_file(
        self,
        name: str,
        content_type: str,
        path: str,
        size: int,
    ) -> str:
        """Like put, reading from a local file the backend opens itself."""
        ...

    async def list_objects(self) -> list[StoredObject]:
        """All objects in the bucket, in provider order."""
        ...

    async def list_sorted(self) -> list[StoredObject]:
        """All objects, most recently modified first."""
        ...

    async def head_exists(self, name: str) -> bool:
        """Whether an object with this name exists."""
        ...

    async def delete(self, name: str) -> None:
        """Remove an object. Raises NotFoundError if it doesn't exist."""
        ...


class BaseStorageBackend(ABC):
    """
    Shared behavior for SDK-backed storage.

    Provider SDKs are synchronous. Subclasses implement the blocking
    `_*_sync` hooks; this class runs them in a worker thread with a
    timeout and retries transient failures with linear backoff.
    Provider exceptions are logged here and replaced by BackendError so
    nothing provider-specific reaches a response body.

    Uploads get their own, longer timeout: a multi-gigabyte transfer is
    bounded by the SDK's per-request timeouts, not by the listing bound.
    """

    provider = "base"

    def __init__(self, config: StorageConfig) -> None:
        self._config = config
        self._base_url = config.public_base_url.rstrip("/")

    @property
    def bucket_name(self) -> str:
        return self._config.bucket_name

    def public_url(self, name: str) -> str:
        return f"{self._base_url}/{name}"

    # ------------------------------------------------------------------
    # Public async API
    # ------------------------------------------------------------------

    async def put(
        self,
        name: str,
        content_type: str,
        stream: BinaryIO,
        size: int,
    ) -> str:
        def upload() -> None:
            # each attempt re-sends the whole object
            stream.seek(0)
            self._put_sync(name, content_type, stream, size)

        return await self._upload(name, size, upload)

    async def put_file(
        self,
        name: str,
        content_type: str,
        path: str,
        size: int,
    ) -> str:
        def upload() -> None:
            # the worker thread owns its handle, so a caller that stops
            # waiting never leaves it reading a closed file
            with open(path, "rb") as stream:
                self._put_sync(name, content_type, stream, size)

        return await self._upload(name, size, upload)

    async def list_objects(self) -> list[StoredObject]:
        return await self._run("list", self._list_sync)

    async def list_sorted(self) -> list[StoredObject]:
        return sort_newest_first(await self.list_objects())

    async def head_exists(self, name: str) -> bool:
        return await self._run(
            "check", lambda: self._exists_sync(name), object_name=name
        )

    async def delete(self, name: str) -> None:
        if not await self.head_exists(name):
            raise NotFoundError(f"Video '{name}' not found.")

        await self._run("delete", lambda: self._delete_sync(name), object_name=name)

        logger.info(
            "Deleted object",
            extra={"provider": self.provider, "object_name": name}
        )

    async def _upload(self, name: str, size: int, upload: Callable[[], None]) -> str:
        await self._run(
            "upload",
            upload,
            timeout=self._config.upload_timeout_seconds,
            object_name=name,
        )

        logger.info(
            "Uploaded object",
            extra={
                "provider": self.provider,
                "object_name": name,
                "size_bytes": size,
            }
        )

        return self.public_url(name)

    # ------------------------------------------------------------------
    # Provider hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _put_sync(
        self, name: str, content_type: str, stream: BinaryIO, size: int
    ) -> None:
        ...

    @abstractmethod
    def _list_sync(self) -> list[StoredObject]:
        ...

    @abstractmethod
    def _exists_sync(self, name: str) -> bool:
        ...

    @abstractmethod
    def _delete_sync(self, name: str) -> None:
        ...

    def _is_transient(self, exc: Exception) -> bool:
        """Whether a provider failure is worth another attempt."""
        return isinstance(exc, ConnectionError)

    def _is_timeout(self, exc: Exception) -> bool:
        """Whether a provider failure is the SDK giving up on a slow call."""
        return isinstance(exc, TimeoutError)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _run(
        self,
        operation: str,
        func: Callable[[], T],
        timeout: Optional[float] = None,
        **context,
    ) -> T:
        attempts = self._config.max_retries + 1
        timeout = timeout or self._config.timeout_seconds

        for attempt in range(1, attempts + 1):
            # asyncio.wait never raises on expiry, so an SDK TimeoutError
            # can't be confused with our own deadline on any interpreter
            call = asyncio.ensure_future(asyncio.to_thread(func))
            done, _ = await asyncio.wait({call}, timeout=timeout)

            if not done:
                call.cancel()
                logger.error(
                    "Storage operation timed out",
                    extra={
                        "provider": self.provider,
                        "operation": operation,
                        "timeout_seconds": timeout,
                        **context,
                    }
                )
                raise BackendTimeoutError()

            try:
                return call.result()
            except VideoStoreError:
                raise
            except Exception as e:
                if self._is_timeout(e):
                    logger.error(
                        "Storage provider timed out",
                        extra={
                            "provider": self.provider,
                            "operation": operation,
                            "error": str(e),
                            **context,
                        },
                    )
                    raise BackendTimeoutError() from e

                if attempt < attempts and self._is_transient(e):
                    logger.warning(
                        "Transient storage failure, retrying",
                        extra={
                            "provider": self.provider,
                            "operation": operation,
                            "attempt": attempt,
                            "error": str(e),
                            **context,
                        }
                    )
                    await asyncio.sleep(self._config.retry_backoff_seconds * attempt)
                    continue

                logger.error(
                    "Storage operation failed",
                    extra={
                        "provider": self.provider,
                        "operation": operation,
                        "attempts": attempt,
                        "error": str(e),
                        **context,
                    },
                    exc_info=e,
                )
                raise BackendError(f"Failed to {operation} video.") from e

        # unreachable: the loop either returns or raises
        raise BackendError(f"Failed to {operation} video.")




# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class _MockObject:
    data: bytes
    content_type: str
    last_modified: datetime


class MockStorageBackend(BaseStorageBackend):
    """
    In-memory storage for local development.

    Goes through the same thread/timeout/retry path as the real
    providers, so handler behavior under mock mode matches production.
    Not suitable for production, but perfect for development and testing.
    """

    provider = "mock"

    def __init__(
        self,
        config: StorageConfig,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        super().__init__(config)
        self._objects: dict[str, _MockObject] = {}
        self._lock = threading.Lock()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        logger.info("Initialized mock storage backend (in-memory)")

    def read(self, name: str) -> bytes:
        """Stored bytes of an object (mock only, for inspection)."""
        with self._lock:
            if name not in self._objects:
                raise NotFoundError(f"Video '{name}' not found.")
            return self._objects[name].data

    def _put_sync(
        self, name: str, content_type: str, stream: BinaryIO, size: int
    ) -> None:
        data = stream.read()
        with self._lock:
            self._objects[name] = _MockObject(
                data=data,
                content_type=content_type,
                last_modified=self._clock(),
            )

    def _list_sync(self) -> list[StoredObject]:
        with self._lock:
            snapshot = list(self._objects.items())

        return [
            StoredObject(
                name=name,
                content_type=obj.content_type,
                size=len(obj.data),
                last_modified=obj.last_modified,
                url=self.public_url(name),
            )
            for name, obj in snapshot
        ]

    def _exists_sync(self, name: str) -> bool:
        with self._lock:
            return name in self._objects

    def _delete_sync(self, name: str) -> None:
        with self._lock:
            if self._objects.pop(name, None) is None:
                raise NotFoundError(f"Video '{name}' not found.")


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_backend(kind: str, config: StorageConfig) -> StorageBackend:
    """
    Create the storage backend selected by configuration.

    Provider modules are imported here, not at module level, so that
    mock mode runs without google-cloud-storage or boto3 configured.

    Args:
        kind: "gcs", "s3" or "mock"
        config: Storage configuration

    Returns:
        StorageBackend implementation
    """
    if kind == "mock":
        return MockStorageBackend(config)

    if kind == "s3":
        from .s3 import S3StorageBackend
        return S3StorageBackend(config)

    if kind == "gcs":
        from .gcs import GCSStorageBackend
        return GCSStorageBackend(config)

    raise ValueError(f"Unknown storage backend: {kind}")
