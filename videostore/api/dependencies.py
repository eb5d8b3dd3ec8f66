"""
FastAPI dependency injection.

The storage backend and settings are built once by the application
factory and stored on `app.state`. Route handlers receive them through
these dependencies, so tests can construct an app around a fake backend
without touching process-wide state.
"""

import logging
from typing import Annotated

from fastapi import Depends, Request

from ..config.settings import Settings
from ..infrastructure.storage.client import StorageBackend, StorageConfig

logger = logging.getLogger(__name__)


def build_storage_config(settings: Settings) -> StorageConfig:
    """Translate environment settings into backend configuration."""
    return StorageConfig(
        bucket_name=settings.bucket_name,
        public_base_url=settings.resolved_public_base_url,
        timeout_seconds=settings.backend_timeout_seconds,
        upload_timeout_seconds=settings.backend_upload_timeout_seconds,
        max_retries=settings.backend_max_retries,
        access_key_id=settings.s3_access_key_id or None,
        secret_access_key=settings.s3_secret_access_key or None,
        region=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
        credentials_file=settings.gcs_credentials_file,
        project=settings.gcs_project,
    )


def get_app_settings(request: Request) -> Settings:
    """Provide the settings the application was created with."""
    return request.app.state.settings


def get_storage_backend(request: Request) -> StorageBackend:
    """
    Provide the storage backend for the current request.

    The backend is read-only after startup and shared by all requests.
    """
    backend = getattr(request.app.state, "storage", None)
    if backend is None:
        # lifespan has not run (or failed); nothing to delegate to
        logger.error("Storage backend requested before initialization")
        raise RuntimeError("Storage backend is not initialized")
    return backend


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

SettingsDep = Annotated[Settings, Depends(get_app_settings)]
StorageBackendDep = Annotated[StorageBackend, Depends(get_storage_backend)]
