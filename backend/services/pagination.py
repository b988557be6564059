"""Page window arithmetic for listings."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class PageWindow:
    """Slice `[offset, offset + limit)` of a sorted result set."""

    page: int
    limit: int

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.limit < 1:
            raise ValueError("limit must be >= 1")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, count: int) -> int:
        return total_pages(count, self.limit)


def total_pages(count: int, limit: int) -> int:
    """Return `ceil(count / limit)`; zero matches means zero pages."""

    if limit < 1:
        raise ValueError("limit must be >= 1")
    return math.ceil(count / limit)
