"""
Pagination windows for collection views.

Pure arithmetic over (skip, limit, total); nothing here touches the store.
Page numbers are 1-based and use half-up rounding, so a view opened at an
offset that is not a multiple of the page size still lands on a sensible page.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class PageWindow:
    """A navigable page: its 1-based number and the offset that opens it."""

    page: int
    skip: int

    @property
    def exists(self) -> bool:
        """Negative offsets mean there is no such page."""
        return self.skip >= 0


@dataclass(frozen=True)
class Pagination:
    here: int
    prev: PageWindow
    prev2: PageWindow
    next: PageWindow
    next2: PageWindow
    last: int
    has_multiple_pages: bool


def _window(skip: int, limit: int) -> PageWindow:
    return PageWindow(page=_round_half_up(skip / limit) + 1, skip=skip)


def compute_pagination(skip: int, limit: int, total: int) -> Pagination:
    """
    Derive navigation windows around the current offset.

    Args:
        skip: Offset of the current page
        limit: Page size (server-fixed, must be positive)
        total: Number of documents matching the query

    Returns:
        Pagination with prev/prev2/next/next2 windows, the current page
        number and the offset of the last page
    """
    if limit <= 0:
        raise ValueError("limit must be positive")

    last = (math.ceil(total / limit) - 1) * limit
    return Pagination(
        here=_round_half_up(skip / limit) + 1,
        prev=_window(skip - limit, limit),
        prev2=_window(skip - limit * 2, limit),
        next=_window(skip + limit, limit),
        next2=_window(skip + limit * 2, limit),
        last=max(last, 0),
        has_multiple_pages=total > limit,
    )
