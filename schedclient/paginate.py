from __future__ import annotations

from typing import Generic, List, Sequence, TypeVar

from .utils import clamp, page_count

PAGE_SIZE = 10

T = TypeVar("T")


class Paginator(Generic[T]):
    """Fixed-size pages over a result list. Pages are 1-based."""

    def __init__(self, items: Sequence[T], page_size: int = PAGE_SIZE):
        self._items = list(items)
        self.page_size = page_size
        self.page = 1

    def __len__(self) -> int:
        return len(self._items)

    @property
    def total_pages(self) -> int:
        return page_count(len(self._items), self.page_size)

    @property
    def items(self) -> List[T]:
        start = (self.page - 1) * self.page_size
        return self._items[start : start + self.page_size]

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def next(self) -> int:
        if self.has_next:
            self.page += 1
        return self.page

    def prev(self) -> int:
        if self.has_prev:
            self.page -= 1
        return self.page

    def go_to(self, page: int) -> int:
        self.page = clamp(page, 1, max(1, self.total_pages))
        return self.page
