from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Sequence, TypeVar

from ..core.constants import DEFAULT_PAGE_SIZE

T = TypeVar("T")
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class PagedResponse(Generic[T]):
    """One page of results plus the navigation flags callers render."""

    content: list[T]
    current_page: int
    page_size: int
    total_elements: int
    total_pages: int = field(init=False)
    first: bool = field(init=False)
    last: bool = field(init=False)
    has_next: bool = field(init=False)
    has_previous: bool = field(init=False)

    def __post_init__(self) -> None:
        total_pages = math.ceil(self.total_elements / self.page_size) if self.page_size > 0 else 0
        object.__setattr__(self, "total_pages", total_pages)
        object.__setattr__(self, "first", self.current_page == 0)
        object.__setattr__(self, "last", self.current_page >= total_pages - 1)
        object.__setattr__(self, "has_next", self.current_page < total_pages - 1)
        object.__setattr__(self, "has_previous", self.current_page > 0)

    @classmethod
    def of(cls, content: Sequence[T], page: int, size: int, total: int) -> "PagedResponse[T]":
        return cls(content=list(content), current_page=page, page_size=size, total_elements=int(total))

    def map(self, fn: Callable[[T], Any]) -> "PagedResponse[Any]":
        return PagedResponse.of([fn(item) for item in self.content], self.current_page, self.page_size, self.total_elements)

    def to_dict(self) -> dict:
        return {
            "content": list(self.content),
            "currentPage": self.current_page,
            "pageSize": self.page_size,
            "totalElements": self.total_elements,
            "totalPages": self.total_pages,
            "first": self.first,
            "last": self.last,
            "hasNext": self.has_next,
            "hasPrevious": self.has_previous,
        }


def paginate_list(items: Sequence[T], page: int, size: int) -> PagedResponse[T]:
    """Slice an already-loaded list into a page (used for filtered views)."""
    start = max(page, 0) * max(size, 0)
    chunk = list(items[start:start + size]) if size > 0 and start < len(items) else []
    return PagedResponse.of(chunk, page, size, len(items))


def page_params(args, *, default_size: int = DEFAULT_PAGE_SIZE) -> tuple[int, int]:
    """Read zero-based ``page``/``size`` from a request args mapping."""
    try:
        page = max(int(args.get("page", 0)), 0)
    except (TypeError, ValueError):
        page = 0
    try:
        size = int(args.get("size", default_size))
        size = max(1, min(size, MAX_PAGE_SIZE))
    except (TypeError, ValueError):
        size = default_size
    return page, size
