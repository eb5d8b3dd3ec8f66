"""
HTTP tests for the video endpoints.

Every app runs on the in-memory backend (see conftest.py). Uploads are
staged in a per-test directory so tests can check nothing is left behind.
"""

import asyncio
import os
import time
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from videostore.infrastructure.storage.client import MockStorageBackend
from videostore.main import create_app

BASE_URL = "https://storage.example.com/test-bucket"


def upload(client: TestClient, filename: str, data: bytes = b"video", content_type="video/mp4"):
    return client.post("/upload", files={"video": (filename, data, content_type)})


class BrokenBackend(MockStorageBackend):
    """Fails every upload with a provider-looking error."""

    def _put_sync(self, name, content_type, stream, size):
        raise RuntimeError("AccessDenied: arn:aws:iam::123456789012 secret")


class HangingBackend(MockStorageBackend):
    def _put_sync(self, name, content_type, stream, size):
        time.sleep(0.5)


class SlowUploadBackend(MockStorageBackend):
    """Uploads take longer than a listing is allowed to."""

    def _put_sync(self, name, content_type, stream, size):
        time.sleep(0.2)
        super()._put_sync(name, content_type, stream, size)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class TestStatus:

    def test_status(self, client):
        response = client.get("/status")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "Server is running"
        assert body["backend"] == "mock"


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

class TestUpload:

    def test_upload_returns_public_url_of_normalized_name(self, client, backend, staging_dir):
        response = upload(client, "My Holiday Clip.MP4", b"frames")

        assert response.status_code == 200
        body = response.json()
        assert body["url"] == f"{BASE_URL}/my-holiday-clip.mp4"
        assert "message" in body
        assert backend.read("my-holiday-clip.mp4") == b"frames"
        assert os.listdir(staging_dir) == []

    def test_upload_without_file_is_400(self, client):
        response = client.post("/upload", data={"other": "field"})

        assert response.status_code == 400
        assert response.json() == {"error": "No file uploaded."}

    def test_upload_overwrites_same_name(self, client, backend):
        upload(client, "clip.mp4", b"first")
        upload(client, "CLIP.mp4", b"second")

        assert backend.read("clip.mp4") == b"second"
        assert len(client.get("/videos").json()) == 1

    def test_backend_failure_is_500_without_provider_detail(self, settings, storage_config, staging_dir):
        client = TestClient(create_app(settings=settings, backend=BrokenBackend(storage_config)))

        response = upload(client, "clip.mp4")

        assert response.status_code == 500
        body = response.json()
        assert set(body) == {"error"}
        assert "AccessDenied" not in body["error"]
        assert "123456789012" not in response.text
        assert os.listdir(staging_dir) == []

    def test_oversized_upload_is_413(self, settings, backend, staging_dir):
        settings.max_upload_size_bytes = 4
        client = TestClient(create_app(settings=settings, backend=backend))

        response = upload(client, "clip.mp4", b"too many bytes")

        assert response.status_code == 413
        assert "error" in response.json()
        assert os.listdir(staging_dir) == []

    def test_backend_timeout_is_504(self, settings, storage_config, staging_dir):
        storage_config.timeout_seconds = 0.05
        storage_config.upload_timeout_seconds = 0.05
        client = TestClient(create_app(settings=settings, backend=HangingBackend(storage_config)))

        response = upload(client, "clip.mp4")

        assert response.status_code == 504
        assert os.listdir(staging_dir) == []

    def test_upload_slower_than_listing_timeout_succeeds(self, settings, storage_config, staging_dir):
        storage_config.timeout_seconds = 0.05
        storage_config.upload_timeout_seconds = 5.0
        backend = SlowUploadBackend(storage_config)
        client = TestClient(create_app(settings=settings, backend=backend))

        response = upload(client, "clip.mp4", b"frames")

        assert response.status_code == 200
        assert backend.read("clip.mp4") == b"frames"
        assert os.listdir(staging_dir) == []

    def test_announced_oversized_body_is_413_without_staging(self, settings, backend, staging_dir):
        settings.max_upload_size_bytes = 1024
        client = TestClient(create_app(settings=settings, backend=backend))

        response = upload(client, "huge.mp4", b"x" * (200 * 1024))

        assert response.status_code == 413
        assert response.json() == {"error": "Uploaded file is too large."}
        assert os.listdir(staging_dir) == []
        assert client.get("/videos").json() == []


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

class TestListVideos:

    def test_empty_bucket_is_empty_array(self, client):
        response = client.get("/videos")

        assert response.status_code == 200
        assert response.json() == []

    def test_lists_name_and_url(self, client, seed):
        seed("a.mp4", "b.mp4")

        videos = client.get("/videos").json()

        assert sorted(videos, key=lambda v: v["name"]) == [
            {"name": "a.mp4", "url": f"{BASE_URL}/a.mp4"},
            {"name": "b.mp4", "url": f"{BASE_URL}/b.mp4"},
        ]


class TestListVideosPaginated:

    @pytest.fixture
    def twenty_five(self, seed):
        # seeded oldest first, so newest-first order is video-25 .. video-01
        names = [f"video-{i:02d}.mp4" for i in range(1, 26)]
        seed(*names)
        return list(reversed(names))

    def test_first_page(self, client, twenty_five):
        response = client.get("/videos-custom", params={"page": 1, "limit": 10})

        assert response.status_code == 200
        body = response.json()
        assert [v["name"] for v in body["videos"]] == twenty_five[:10]
        assert body["pagination"] == {
            "total": 25,
            "page": 1,
            "limit": 10,
            "totalPages": 3,
            "hasNextPage": True,
            "hasPreviousPage": False,
        }

    def test_last_page(self, client, twenty_five):
        body = client.get("/videos-custom", params={"page": 3, "limit": 10}).json()

        assert [v["name"] for v in body["videos"]] == twenty_five[20:]
        assert body["pagination"]["hasNextPage"] is False
        assert body["pagination"]["hasPreviousPage"] is True

    def test_page_beyond_range_is_400(self, client, twenty_five):
        response = client.get("/videos-custom", params={"page": 4, "limit": 10})

        assert response.status_code == 400
        assert "error" in response.json()

    def test_items_carry_metadata(self, client, seed):
        seed("clip.mp4")

        video = client.get("/videos-custom").json()["videos"][0]

        assert video["name"] == "clip.mp4"
        assert video["url"] == f"{BASE_URL}/clip.mp4"
        assert video["contentType"] == "video/mp4"
        assert video["size"] == len(b"clip.mp4")
        assert "lastModified" in video

    def test_empty_bucket_first_page(self, client):
        body = client.get("/videos-custom").json()

        assert body["videos"] == []
        assert body["pagination"]["total"] == 0
        assert body["pagination"]["totalPages"] == 0

    @pytest.mark.parametrize("params", [
        {"page": 1, "limit": 0},
        {"page": 1, "limit": 101},
        {"page": 0, "limit": 10},
        {"page": "abc", "limit": 10},
    ])
    def test_invalid_params_rejected_before_backend_call(self, client, backend, monkeypatch, params):
        spy = AsyncMock(return_value=[])
        monkeypatch.setattr(backend, "list_sorted", spy)

        response = client.get("/videos-custom", params=params)

        assert response.status_code == 400
        assert "error" in response.json()
        spy.assert_not_awaited()


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

class TestDeleteVideo:

    def test_delete_existing(self, client, seed):
        seed("clip.mp4")

        response = client.delete("/delete/clip.mp4")

        assert response.status_code == 200
        assert "message" in response.json()

    def test_deleted_video_is_not_listed(self, client, seed):
        seed("keep.mp4", "drop.mp4")

        client.delete("/delete/drop.mp4")

        names = [v["name"] for v in client.get("/videos").json()]
        assert names == ["keep.mp4"]

    def test_delete_missing_is_404(self, client):
        response = client.delete("/delete/ghost.mp4")

        assert response.status_code == 404
        assert "error" in response.json()

    @pytest.mark.parametrize("path", ["/delete", "/delete/%20"])
    def test_delete_without_name_is_400(self, client, path):
        response = client.delete(path)

        assert response.status_code == 400
        assert response.json() == {"error": "Video name is required."}

    def test_upload_then_delete_name_with_slash(self, client):
        response = upload(client, "dir/My Clip.mp4")
        assert response.json()["url"] == f"{BASE_URL}/dir/my-clip.mp4"

        response = client.delete("/delete/dir/my-clip.mp4")

        assert response.status_code == 200
        assert response.json() == {"message": "Video 'dir/my-clip.mp4' deleted successfully."}
        assert client.get("/videos").json() == []

    def test_delete_encoded_slash(self, client, seed):
        seed("dir/clip.mp4")

        response = client.delete("/delete/dir%2Fclip.mp4")

        assert response.status_code == 200
        assert client.get("/videos").json() == []

    def test_query_parameter_does_not_delete(self, client, seed, backend):
        seed("clip.mp4")

        response = client.delete("/delete", params={"video_name": "clip.mp4"})

        assert response.status_code == 400
        assert response.json() == {"error": "Video name is required."}
        assert backend.read("clip.mp4") == b"clip.mp4"


# ---------------------------------------------------------------------------
# Framework errors
# ---------------------------------------------------------------------------

class TestFrameworkErrors:

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    def test_wrong_method_uses_error_shape(self, client):
        response = client.get("/upload")

        assert response.status_code == 405
        assert response.json() == {"error": "Method Not Allowed"}
        assert "POST" in response.headers["allow"]


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

class TestConcurrentUploads:

    @pytest.mark.asyncio
    async def test_two_uploads_both_land(self, app, staging_dir):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            first, second = await asyncio.gather(
                ac.post("/upload", files={"video": ("one.mp4", b"1" * 2048, "video/mp4")}),
                ac.post("/upload", files={"video": ("two.mp4", b"2" * 2048, "video/mp4")}),
            )
            listing = await ac.get("/videos")

        assert first.status_code == 200
        assert second.status_code == 200
        assert {v["name"] for v in listing.json()} == {"one.mp4", "two.mp4"}
        assert os.listdir(staging_dir) == []
