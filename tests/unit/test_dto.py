"""Unit tests for pagination DTOs."""

import pytest

from pcb_tracker.services.dto import PaginatedResult, PaginationParams


class TestPaginationParams:
    def test_offset(self):
        assert PaginationParams(page=3, per_page=20).offset() == 40

    @pytest.mark.parametrize(
        "kwargs",
        [{"page": 0}, {"per_page": 0}, {"per_page": 1001}],
    )
    def test_rejects_out_of_range(self, kwargs):
        with pytest.raises(ValueError):
            PaginationParams(**kwargs)


class TestPaginatedResult:
    def test_page_math(self):
        result = PaginatedResult(items=[1, 2], total=5, page=2, per_page=2)

        assert result.pages == 3
        assert result.has_next
        assert result.has_prev

    def test_empty_result_has_one_page(self):
        result = PaginatedResult(items=[], total=0, page=1, per_page=50)

        assert result.pages == 1
        assert not result.has_next
        assert not result.has_prev

    def test_to_dict(self):
        result = PaginatedResult(items=["a"], total=1, page=1, per_page=10)

        assert result.to_dict() == {
            "data": ["a"],
            "pagination": {"page": 1, "limit": 10, "total": 1, "total_pages": 1},
        }
