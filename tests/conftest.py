"""
Shared fixtures.

Every app built here runs on the in-memory backend with a deterministic
clock, and stages uploads in a per-test temporary directory so tests can
assert that nothing is left behind.
"""

import asyncio
import io
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from videostore.config.settings import Settings
from videostore.infrastructure.storage.client import MockStorageBackend, StorageConfig
from videostore.main import create_app

BASE_URL = "https://storage.example.com/test-bucket"


class TickingClock:
    """Returns a strictly increasing timestamp on every call."""

    def __init__(self) -> None:
        self._now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def settings(staging_dir) -> Settings:
    return Settings(
        _env_file=None,
        storage_backend="mock",
        bucket_name="test-bucket",
        public_base_url=BASE_URL,
        staging_dir=str(staging_dir),
    )


@pytest.fixture
def storage_config() -> StorageConfig:
    return StorageConfig(
        bucket_name="test-bucket",
        public_base_url=BASE_URL,
        timeout_seconds=2.0,
        max_retries=0,
        retry_backoff_seconds=0.0,
    )


@pytest.fixture
def backend(storage_config) -> MockStorageBackend:
    return MockStorageBackend(storage_config, clock=TickingClock())


@pytest.fixture
def app(settings, backend):
    return create_app(settings=settings, backend=backend)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def seed(backend):
    """Store small objects directly in the backend, oldest first."""
    def _seed(*names: str) -> None:
        for name in names:
            data = name.encode()
            asyncio.run(backend.put(name, "video/mp4", io.BytesIO(data), len(data)))
    return _seed
