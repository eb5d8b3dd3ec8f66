"""
Pagination over a bucket listing.

Parameters are validated before the backend is touched, so a bad
page or limit costs no provider round-trip.
"""

import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from .errors import ValidationError

MAX_LIMIT = 100
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

T = TypeVar("T")


@dataclass(frozen=True)
class PaginationParams:
    """Requested page (1-based) and page size (1-100)."""
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValidationError("Page must be a positive integer.")
        if not 1 <= self.limit <= MAX_LIMIT:
            raise ValidationError(f"Limit must be between 1 and {MAX_LIMIT}.")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Page(Generic[T]):
    """One slice of a listing plus the numbers a client needs to navigate."""
    items: list[T]
    total: int
    page: int
    limit: int
    total_pages: int

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1


def paginate(items: Sequence[T], params: PaginationParams) -> Page[T]:
    """
    Slice an already-ordered sequence.

    Raises ValidationError when the page lies beyond the last one.
    An empty listing has zero pages and page 1 is still valid (and empty).
    """
    total = len(items)
    total_pages = math.ceil(total / params.limit)

    if total > 0 and params.page > total_pages:
        raise ValidationError(
            f"Page {params.page} is out of range. Total pages: {total_pages}."
        )

    window = list(items[params.offset:params.offset + params.limit])

    return Page(
        items=window,
        total=total,
        page=params.page,
        limit=params.limit,
        total_pages=total_pages,
    )
