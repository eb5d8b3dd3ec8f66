"""
Object storage integration for uploaded videos.

Supports Google Cloud Storage and S3-compatible services (AWS S3, R2, MinIO).
Includes mock mode for local development without credentials.
"""

from .client import (
    BaseStorageBackend,
    MockStorageBackend,
    StorageBackend,
    StorageConfig,
    create_storage_backend,
)

__all__ = [
    "BaseStorageBackend",
    "MockStorageBackend",
    "StorageBackend",
    "StorageConfig",
    "create_storage_backend",
]
