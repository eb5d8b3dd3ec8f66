"""
Core logic for the video store.

This module is framework-agnostic - it doesn't import FastAPI or any
storage SDK. Naming rules, pagination and upload staging can be tested
in isolation.
"""

from .errors import (
    BackendError,
    BackendTimeoutError,
    NotFoundError,
    PayloadTooLargeError,
    ValidationError,
    VideoStoreError,
)
from .models import StoredObject, normalize_object_name, sort_newest_first
from .pagination import Page, PaginationParams, paginate
from .staging import StagedUpload, stage_upload

__all__ = [
    "BackendError",
    "BackendTimeoutError",
    "NotFoundError",
    "PayloadTooLargeError",
    "ValidationError",
    "VideoStoreError",
    "StoredObject",
    "normalize_object_name",
    "sort_newest_first",
    "Page",
    "PaginationParams",
    "paginate",
    "StagedUpload",
    "stage_upload",
]
