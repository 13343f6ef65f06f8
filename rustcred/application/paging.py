from __future__ import annotations
import logging
from typing import Awaitable, Callable, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

# GitHub REST listings allow at most 100 results per page
PAGE_SIZE = 100


async def fetch_all_pages(fetch_page: Callable[[int], Awaitable[list[T]]], page_size: int = PAGE_SIZE) -> list[T]:
    """
    Walk pages 1, 2, 3 … of a listing and return every item in page order.

    Stops at the first page holding fewer than `page_size` items. When
    the total is an exact multiple of `page_size` that means one extra,
    empty page is requested.

    Any exception from `fetch_page` propagates and the pages collected
    so far are dropped.
    """
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")

    items: list[T] = []
    page = 1
    while True:
        batch = await fetch_page(page)
        items.extend(batch)
        log.debug("Page %d | %d items | running total %d", page, len(batch), len(items))
        if len(batch) < page_size:
            return items
        page += 1
