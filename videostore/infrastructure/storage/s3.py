"""
S3-compatible storage backend.

Uses boto3, so the same adapter serves AWS S3, Cloudflare R2 and MinIO;
only the endpoint URL and region differ.
"""

import logging
import mimetypes
from typing import Any, BinaryIO, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from ...core.errors import NotFoundError
from ...core.models import StoredObject
from .client import DEFAULT_CONTENT_TYPE, BaseStorageBackend, StorageConfig

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}
_THROTTLE_CODES = {"Throttling", "ThrottlingException", "SlowDown", "RequestTimeout"}


class S3StorageBackend(BaseStorageBackend):
    """
    Object storage on an S3-compatible service.

    botocore's own retries are disabled: BaseStorageBackend owns the
    retry policy so both providers back off the same way.
    """

    provider = "s3"

    def __init__(self, config: StorageConfig, client: Optional[Any] = None) -> None:
        super().__init__(config)

        if client is None:
            boto_config = Config(
                signature_version="s3v4",
                retries={"total_max_attempts": 1},
                connect_timeout=config.timeout_seconds,
                read_timeout=config.timeout_seconds,
            )

            client = boto3.client(
                "s3",
                endpoint_url=config.endpoint_url,
                aws_access_key_id=config.access_key_id or None,
                aws_secret_access_key=config.secret_access_key or None,
                region_name=config.region,
                config=boto_config,
            )

        self._s3_client = client

        logger.info(
            "Initialized S3 storage backend",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url or "aws",
            }
        )

    def _put_sync(
        self, name: str, content_type: str, stream: BinaryIO, size: int
    ) -> None:
        # upload_fileobj switches to multipart for large bodies
        self._s3_client.upload_fileobj(
            stream,
            self.bucket_name,
            name,
            ExtraArgs={"ContentType": content_type},
        )

    def _list_sync(self) -> list[StoredObject]:
        paginator = self._s3_client.get_paginator("list_objects_v2")
        objects = []

        for page in paginator.paginate(Bucket=self.bucket_name):
            for obj in page.get("Contents", []):
                key = obj["Key"]
                # listings carry no content type; guess from the extension
                guessed, _ = mimetypes.guess_type(key)
                objects.append(StoredObject(
                    name=key,
                    content_type=guessed or DEFAULT_CONTENT_TYPE,
                    size=obj.get("Size", 0),
                    last_modified=obj["LastModified"],
                    url=self.public_url(key),
                ))

        return objects

    def _exists_sync(self, name: str) -> bool:
        try:
            self._s3_client.head_object(Bucket=self.bucket_name, Key=name)
            return True
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return False
            raise

    def _delete_sync(self, name: str) -> None:
        try:
            self._s3_client.delete_object(Bucket=self.bucket_name, Key=name)
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                raise NotFoundError(f"Video '{name}' not found.")
            raise

    def _is_transient(self, exc: Exception) -> bool:
        if isinstance(exc, (EndpointConnectionError, ConnectionClosedError)):
            return True
        if isinstance(exc, ClientError):
            status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
            return status >= 500 or _error_code(exc) in _THROTTLE_CODES
        return super()._is_transient(exc)

    def _is_timeout(self, exc: Exception) -> bool:
        return (
            isinstance(exc, (ConnectTimeoutError, ReadTimeoutError))
            or super()._is_timeout(exc)
        )


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))
