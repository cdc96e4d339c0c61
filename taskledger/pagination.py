"""Page-window arithmetic for owner-scoped task listing.

Pages are 1-based. A request for page ``offset`` of size ``limit`` covers records ``[start_index, end_index)`` where
``start_index = (offset - 1) * limit`` and ``end_index = start_index + limit``. The store is always queried with
``skip=start_index`` and ``take=limit``.
"""

import math
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from pydantic import BaseModel

from taskledger.core.exceptions import ValidationError

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
# skip and limit are encoded as signed 64-bit BSON integers
MAX_INDEX = 2**63 - 1


class PageWindow(BaseModel):
    """A validated 1-based page request."""

    offset: int
    limit: int

    @property
    def start_index(self) -> int:
        return (self.offset - 1) * self.limit

    @property
    def end_index(self) -> int:
        return self.start_index + self.limit

    @property
    def skip(self) -> int:
        return self.start_index

    @property
    def take(self) -> int:
        return self.limit


class Page(BaseModel, Generic[T]):
    items: List[T]
    total_count: int
    total_pages: int


def _parse_positive(name: str, raw: Optional[str | int], default: int) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    if isinstance(raw, bool):
        raise ValidationError(f"'{name}' must be an integer")
    try:
        value = int(raw.strip()) if isinstance(raw, str) else int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"'{name}' must be an integer, got '{raw}'") from None
    if value < 1:
        raise ValidationError(f"'{name}' must be at least 1, got {value}")
    return value


def parse_window(
    offset: Optional[str | int] = None,
    limit: Optional[str | int] = None,
    *,
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> PageWindow:
    """Validate textual ``offset`` and ``limit`` into a ``PageWindow``.

    Missing values fall back to the first page of ``default_limit`` items. Non-numeric values, values below 1, and
    a ``limit`` above ``max_limit`` raise ``ValidationError``; nothing is clamped. So does an ``offset`` whose window
    ends past ``MAX_INDEX``.
    """
    page = _parse_positive("offset", offset, 1)
    size = _parse_positive("limit", limit, default_limit)
    if size > max_limit:
        raise ValidationError(f"'limit' must be at most {max_limit}, got {size}")
    window = PageWindow(offset=page, limit=size)
    if window.end_index > MAX_INDEX:
        raise ValidationError(f"'offset' is out of range, got {page}")
    return window


def count_pages(total: int, limit: int) -> int:
    """Number of pages of size ``limit`` needed to hold ``total`` records."""
    if limit < 1:
        raise ValidationError(f"'limit' must be at least 1, got {limit}")
    return math.ceil(max(total, 0) / limit)


async def paginate(
    window: PageWindow,
    fetch: Callable[[int, int], Awaitable[List[T]]],
    count: Callable[[], Awaitable[int]],
) -> Page[T]:
    """Fetch one page through ``fetch(skip, take)`` and the match count through ``count()``."""
    items = await fetch(window.skip, window.take)
    total = await count()
    return Page(items=items, total_count=total, total_pages=count_pages(total, window.limit))


__all__ = [
    "count_pages",
    "DEFAULT_PAGE_SIZE",
    "MAX_INDEX",
    "MAX_PAGE_SIZE",
    "Page",
    "PageWindow",
    "paginate",
    "parse_window",
]
