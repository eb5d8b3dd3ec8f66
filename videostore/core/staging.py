"""
Upload staging on local disk.

An upload is copied into a temporary file before it is forwarded to the
bucket. The staged file belongs to one request only and is removed when
the request leaves the staging block, whatever happened inside it
(successful forward, backend failure, timeout, oversized body).

Usage:
    async with stage_upload(upload, staging_dir, max_bytes) as staged:
        url = await backend.put_file(staged.name, staged.content_type, staged.path, staged.size)
"""

import logging
import os
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol

from .errors import PayloadTooLargeError, ValidationError
from .models import normalize_object_name

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class UploadSource(Protocol):
    """
    The slice of an uploaded multipart file we depend on.

    FastAPI's UploadFile satisfies it; tests can pass anything with the
    same shape.
    """
    filename: Optional[str]
    content_type: Optional[str]

    async def read(self, size: int = -1) -> bytes:
        ...


@dataclass(frozen=True)
class StagedUpload:
    """An upload sitting on local disk, ready to be forwarded."""
    name: str
    content_type: str
    path: str
    size: int


async def _copy_to_disk(source: UploadSource, target, max_bytes: int) -> int:
    written = 0
    while True:
        chunk = await source.read(CHUNK_SIZE)
        if not chunk:
            return written
        written += len(chunk)
        if written > max_bytes:
            raise PayloadTooLargeError(
                f"Uploaded file exceeds the {max_bytes} byte limit."
            )
        target.write(chunk)


def _discard(path: str) -> None:
    """Remove a staged file. Failures are logged, never raised."""
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(
            "Failed to remove staged upload",
            extra={"path": path, "error": str(e)},
        )


@asynccontextmanager
async def stage_upload(
    source: Optional[UploadSource],
    staging_dir: str,
    max_bytes: int,
) -> AsyncIterator[StagedUpload]:
    """
    Copy an upload to a temporary file and yield its description.

    Raises:
        ValidationError: no file was sent (missing field or empty filename)
        PayloadTooLargeError: body is larger than max_bytes
    """
    if source is None or not source.filename:
        raise ValidationError("No file uploaded.")

    name = normalize_object_name(source.filename)
    content_type = source.content_type or DEFAULT_CONTENT_TYPE

    os.makedirs(staging_dir, exist_ok=True)
    tmp = tempfile.NamedTemporaryFile(
        dir=staging_dir, prefix="upload-", suffix=".part", delete=False
    )
    path = tmp.name

    try:
        with tmp:
            size = await _copy_to_disk(source, tmp, max_bytes)

        logger.debug(
            "Staged upload",
            extra={"object_name": name, "path": path, "size_bytes": size},
        )

        yield StagedUpload(
            name=name,
            content_type=content_type,
            path=path,
            size=size,
        )
    finally:
        _discard(path)
