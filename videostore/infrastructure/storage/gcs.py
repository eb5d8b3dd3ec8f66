"""
Google Cloud Storage backend.

Credentials come from a service account key file when one is configured,
otherwise from application default credentials.
"""

import logging
from datetime import datetime, timezone
from typing import Any, BinaryIO, Optional

from google.api_core import exceptions as gcs_exceptions
from google.cloud import storage
from requests.exceptions import Timeout as RequestsTimeout

from ...core.errors import NotFoundError
from ...core.models import StoredObject
from .client import DEFAULT_CONTENT_TYPE, BaseStorageBackend, StorageConfig

logger = logging.getLogger(__name__)

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)

_TRANSIENT_ERRORS = (
    gcs_exceptions.TooManyRequests,
    gcs_exceptions.InternalServerError,
    gcs_exceptions.BadGateway,
    gcs_exceptions.ServiceUnavailable,
)


class GCSStorageBackend(BaseStorageBackend):
    """Object storage on a Google Cloud Storage bucket."""

    provider = "gcs"

    def __init__(self, config: StorageConfig, client: Optional[Any] = None) -> None:
        super().__init__(config)

        if client is None:
            if config.credentials_file:
                client = storage.Client.from_service_account_json(
                    config.credentials_file, project=config.project
                )
            else:
                client = storage.Client(project=config.project)

        self._gcs_client = client
        self._bucket = client.bucket(config.bucket_name)

        logger.info(
            "Initialized GCS storage backend",
            extra={
                "bucket": config.bucket_name,
                "key_file": bool(config.credentials_file),
            }
        )

    def _put_sync(
        self, name: str, content_type: str, stream: BinaryIO, size: int
    ) -> None:
        blob = self._bucket.blob(name)
        blob.upload_from_file(
            stream,
            size=size,
            content_type=content_type,
            timeout=self._config.upload_timeout_seconds,
        )

    def _list_sync(self) -> list[StoredObject]:
        blobs = self._gcs_client.list_blobs(
            self.bucket_name, timeout=self._config.timeout_seconds
        )

        return [
            StoredObject(
                name=blob.name,
                content_type=blob.content_type or DEFAULT_CONTENT_TYPE,
                size=blob.size or 0,
                last_modified=blob.updated or blob.time_created or _EPOCH,
                url=self.public_url(blob.name),
            )
            for blob in blobs
        ]

    def _exists_sync(self, name: str) -> bool:
        return self._bucket.blob(name).exists(timeout=self._config.timeout_seconds)

    def _delete_sync(self, name: str) -> None:
        try:
            self._bucket.blob(name).delete(timeout=self._config.timeout_seconds)
        except gcs_exceptions.NotFound:
            raise NotFoundError(f"Video '{name}' not found.")

    def _is_transient(self, exc: Exception) -> bool:
        return isinstance(exc, _TRANSIENT_ERRORS) or super()._is_transient(exc)

    def _is_timeout(self, exc: Exception) -> bool:
        # DeadlineExceeded is a GatewayTimeout
        return (
            isinstance(exc, (gcs_exceptions.GatewayTimeout, RequestsTimeout))
            or super()._is_timeout(exc)
        )
