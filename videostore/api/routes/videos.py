"""
Video endpoints: upload, list, paginated list and delete.

Handlers are stateless: validate input, delegate to the storage backend,
shape the response. Domain errors raised here (or by the backend) are
turned into `{"error": ...}` responses by the handlers registered in
main.py, so no provider detail can leak into a response body.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, File, Query, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...core.errors import ValidationError
from ...core.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, PaginationParams, paginate
from ...core.staging import stage_upload
from ..dependencies import SettingsDep, StorageBackendDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class CamelModel(BaseModel):
    """Serializes snake_case fields as camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadResponse(CamelModel):
    """Response after a successful upload."""
    message: str
    url: str = Field(description="Public URL of the stored video")


class VideoSummary(CamelModel):
    """A stored video as shown in the plain listing."""
    name: str
    url: str


class VideoDetail(VideoSummary):
    """A stored video with its metadata, as shown in the paginated listing."""
    content_type: str
    size: int
    last_modified: datetime


class PaginationInfo(CamelModel):
    """Numbers a client needs to navigate the listing."""
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class PaginatedVideosResponse(CamelModel):
    """One page of videos, newest first."""
    videos: list[VideoDetail]
    pagination: PaginationInfo


class MessageResponse(CamelModel):
    """Plain acknowledgement."""
    message: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload a video",
    description="Stage the `video` multipart field on disk and forward it to the bucket",
)
async def upload_video(
    storage: StorageBackendDep,
    settings: SettingsDep,
    video: Annotated[Optional[UploadFile], File(description="Video file to store")] = None,
) -> UploadResponse:
    """
    Upload a video to the bucket.

    The object name is the original filename with whitespace replaced by
    hyphens, lower-cased. An existing object with the same name is
    overwritten. The staged copy is removed whether or not the forward
    succeeds.
    """
    logger.info(
        "Video upload started",
        extra={
            "video_filename": video.filename if video else None,
            "content_type": video.content_type if video else None,
        }
    )

    async with stage_upload(
        video, settings.staging_dir, settings.max_upload_size_bytes
    ) as staged:
        url = await storage.put_file(
            staged.name, staged.content_type, staged.path, staged.size
        )

    return UploadResponse(
        message="Video uploaded successfully.",
        url=url,
    )


@router.get(
    "/videos",
    response_model=list[VideoSummary],
    summary="List videos",
    description="Every stored video with its public URL",
)
async def list_videos(storage: StorageBackendDep) -> list[VideoSummary]:
    objects = await storage.list_objects()
    return [VideoSummary(name=obj.name, url=obj.url) for obj in objects]


@router.get(
    "/videos-custom",
    response_model=PaginatedVideosResponse,
    summary="List videos page by page",
    description="Videos ordered by last modification, newest first",
)
async def list_videos_paginated(
    storage: StorageBackendDep,
    page: Annotated[int, Query(description="1-based page number")] = DEFAULT_PAGE,
    limit: Annotated[int, Query(description="Videos per page (1-100)")] = DEFAULT_LIMIT,
) -> PaginatedVideosResponse:
    """
    Paginated listing.

    Parameters are validated before the bucket is listed. A page past
    the last one is a 400, except that an empty bucket answers page 1
    with an empty list.
    """
    params = PaginationParams(page=page, limit=limit)

    objects = await storage.list_sorted()
    result = paginate(objects, params)

    return PaginatedVideosResponse(
        videos=[
            VideoDetail(
                name=obj.name,
                url=obj.url,
                content_type=obj.content_type,
                size=obj.size,
                last_modified=obj.last_modified,
            )
            for obj in result.items
        ],
        pagination=PaginationInfo(
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
            has_next_page=result.has_next_page,
            has_previous_page=result.has_previous_page,
        ),
    )


@router.delete("/delete", response_model=MessageResponse, include_in_schema=False)
async def delete_without_name() -> MessageResponse:
    raise ValidationError("Video name is required.")


@router.delete(
    "/delete/{video_name:path}",
    response_model=MessageResponse,
    summary="Delete a video",
    description="Remove a stored video by name. 404 if it does not exist.",
)
async def delete_video(storage: StorageBackendDep, video_name: str) -> MessageResponse:
    """Object names may contain slashes, so the whole remaining path is the name."""
    if not video_name.strip():
        raise ValidationError("Video name is required.")

    await storage.delete(video_name)

    logger.info("Video deleted", extra={"object_name": video_name})

    return MessageResponse(message=f"Video '{video_name}' deleted successfully.")
