"""
Page container for paged reads.
"""
from __future__ import annotations

import math
from typing import Generic, TypeVar

from shop.domain.errors import InvalidPagination

T = TypeVar("T")


def validate_page(page: int, limit: int, max_limit: int) -> None:
    if not isinstance(page, int) or page < 1:
        raise InvalidPagination(f"Page must be an integer >= 1, got {page!r}")
    if not isinstance(limit, int) or limit < 1 or limit > max_limit:
        raise InvalidPagination(f"Limit must be between 1 and {max_limit}, got {limit!r}")


class Page(Generic[T]):
    """One page of results plus the numbers clients need to navigate."""

    def __init__(self, items: list[T], page: int, limit: int, total_items: int):
        self.items = items
        self.current_page = page
        self.items_per_page = limit
        self.total_items = total_items

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.items_per_page)

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1

    def pagination(self) -> dict:
        return {
            "current_page": self.current_page,
            "total_pages": self.total_pages,
            "total_items": self.total_items,
            "items_per_page": self.items_per_page,
            "has_next_page": self.has_next_page,
            "has_prev_page": self.has_prev_page,
        }
