"""Page window arithmetic for the users listing."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

DEFAULT_PAGE_NUMBER = 1
DEFAULT_PAGE_SIZE = 10
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 20


@dataclass(frozen=True)
class PageRequest:
    number: int
    size: int

    @classmethod
    def clamped(cls, number: Optional[int] = None, size: Optional[int] = None) -> "PageRequest":
        """Build a request with the number forced to >= 1 and the size into ``[1, 20]``."""

        if number is None:
            number = DEFAULT_PAGE_NUMBER
        if size is None:
            size = DEFAULT_PAGE_SIZE
        return cls(
            number=max(number, 1),
            size=min(max(size, MIN_PAGE_SIZE), MAX_PAGE_SIZE),
        )


@dataclass(frozen=True)
class PageLink:
    """Logical address of a page; the transport layer renders it as a URI."""

    page_number: int
    page_size: int


@dataclass(frozen=True)
class PageInfo:
    current_page: int
    page_size: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def previous_link(self) -> Optional[PageLink]:
        if not self.has_previous:
            return None
        target = self.current_page - 1
        if self.total_pages > 0:
            # Past the end, point back at the last page that has items.
            target = min(target, self.total_pages)
        return PageLink(page_number=target, page_size=self.page_size)

    @property
    def next_link(self) -> Optional[PageLink]:
        if not self.has_next:
            return None
        return PageLink(page_number=self.current_page + 1, page_size=self.page_size)


def paginate(request: PageRequest, total_count: int) -> PageInfo:
    return PageInfo(current_page=request.number, page_size=request.size, total_count=total_count)


__all__ = [
    "DEFAULT_PAGE_NUMBER",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "MIN_PAGE_SIZE",
    "PageInfo",
    "PageLink",
    "PageRequest",
    "paginate",
]
