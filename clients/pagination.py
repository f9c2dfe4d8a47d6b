"""Lazy, finite, restartable page sequences.

Each ``for`` over a pager starts again from the first page, and iteration
never exceeds ``max_pages`` however the upstream behaves.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, List, Optional, Tuple

DEFAULT_MAX_PAGES = 10

# fetch_page(cursor) -> (items, next_cursor)
CursorFetch = Callable[[Optional[str]], Tuple[List[Any], Optional[str]]]
# fetch_page(offset, limit) -> items
OffsetFetch = Callable[[int, int], List[Any]]


class CursorPages:
    def __init__(self, fetch_page: CursorFetch,
                 max_pages: int = DEFAULT_MAX_PAGES) -> None:
        self.fetch_page = fetch_page
        self.max_pages = max_pages

    def __iter__(self) -> Iterator[List[Any]]:
        cursor: Optional[str] = None
        for _ in range(self.max_pages):
            items, cursor = self.fetch_page(cursor)
            if items:
                yield items
            if not items or not cursor:
                return

    def items(self) -> List[Any]:
        return [item for page in self for item in page]


class OffsetPages:
    def __init__(self, fetch_page: OffsetFetch, page_size: int = 100,
                 max_pages: int = DEFAULT_MAX_PAGES) -> None:
        self.fetch_page = fetch_page
        self.page_size = page_size
        self.max_pages = max_pages

    def __iter__(self) -> Iterator[List[Any]]:
        for page in range(self.max_pages):
            items = self.fetch_page(page * self.page_size, self.page_size)
            if not items:
                return
            yield items
            if len(items) < self.page_size:
                return

    def items(self) -> List[Any]:
        return [item for page in self for item in page]
