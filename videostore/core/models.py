"""
Domain models for stored videos.

These models have no dependencies on FastAPI or on any storage SDK.
Adapters translate provider listings into StoredObject instances.
"""

import re
from dataclasses import dataclass
from datetime import datetime

_WHITESPACE = re.compile(r"\s")


def normalize_object_name(filename: str) -> str:
    """
    Turn an uploaded filename into an object name.

    Each whitespace character becomes a hyphen and the result is
    lower-cased, so "My Video.MP4" is stored as "my-video.mp4".
    Applying it twice gives the same name as applying it once.
    """
    return _WHITESPACE.sub("-", filename).lower()


@dataclass(frozen=True)
class StoredObject:
    """
    An object living in the bucket.

    Frozen because listings are snapshots: the bucket owns the object,
    we only describe it.
    """
    name: str
    content_type: str
    size: int
    last_modified: datetime
    url: str

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Object name cannot be empty")
        if self.size < 0:
            raise ValueError("Object size cannot be negative")


def sort_newest_first(objects: list[StoredObject]) -> list[StoredObject]:
    """Order by last_modified descending, ties broken by name."""
    by_name = sorted(objects, key=lambda obj: obj.name)
    return sorted(by_name, key=lambda obj: obj.last_modified, reverse=True)
