"""Data Transfer Objects for service layer.

Pagination structures shared by the list operations (components,
production entries).
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, TypeVar

T = TypeVar("T")

MAX_PER_PAGE = 1000


@dataclass
class PaginationParams:
    """Page-based pagination parameters.

    Pass ``None`` instead of an instance to a list function to get every row.

    Attributes:
        page: Page number (1-indexed, default 1)
        per_page: Items per page (default 50, max 1000)

    Raises:
        ValueError: If page < 1, per_page < 1, or per_page > 1000
    """

    page: int = 1
    per_page: int = 50

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.per_page < 1:
            raise ValueError("per_page must be >= 1")
        if self.per_page > MAX_PER_PAGE:
            raise ValueError(f"per_page must be <= {MAX_PER_PAGE}")

    def offset(self) -> int:
        """SQL OFFSET for this page.

        Examples:
            >>> PaginationParams(page=2, per_page=50).offset()
            50
        """
        return (self.page - 1) * self.per_page


@dataclass
class PaginatedResult(Generic[T]):
    """One page of results plus navigation metadata.

    Attributes:
        items: Items on this page
        total: Total number of items across all pages
        page: Current page number (1-indexed)
        per_page: Items per page
    """

    items: List[T]
    total: int
    page: int
    per_page: int

    @property
    def pages(self) -> int:
        """Total number of pages (minimum 1, even for empty results)."""
        if self.total == 0:
            return 1
        return (self.total + self.per_page - 1) // self.per_page

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible form: ``{"data": [...], "pagination": {...}}``."""
        return {
            "data": self.items,
            "pagination": {
                "page": self.page,
                "limit": self.per_page,
                "total": self.total,
                "total_pages": self.pages,
            },
        }
