"""Tests for pagination windows."""

import pytest

from mongoscope.query import PageWindow, compute_pagination


class TestComputePagination:
    def test_first_page(self) -> None:
        result = compute_pagination(skip=0, limit=10, total=95)

        assert result.here == 1
        assert result.prev == PageWindow(page=0, skip=-10)
        assert result.prev2 == PageWindow(page=-1, skip=-20)
        assert result.next == PageWindow(page=2, skip=10)
        assert result.next2 == PageWindow(page=3, skip=20)
        assert result.last == 90
        assert result.has_multiple_pages

    def test_missing_windows_are_flagged(self) -> None:
        result = compute_pagination(skip=0, limit=10, total=95)
        assert not result.prev.exists
        assert not result.prev2.exists
        assert result.next.exists

    def test_middle_page(self) -> None:
        result = compute_pagination(skip=40, limit=10, total=95)
        assert result.here == 5
        assert result.prev == PageWindow(page=4, skip=30)
        assert result.next2 == PageWindow(page=7, skip=60)

    @pytest.mark.parametrize("skip,here", [(5, 2), (15, 3), (14, 2), (25, 4)])
    def test_page_number_rounds_half_up(self, skip: int, here: int) -> None:
        assert compute_pagination(skip=skip, limit=10, total=100).here == here

    @pytest.mark.parametrize(
        "total,last",
        [(100, 90), (101, 100), (10, 0), (1, 0), (0, 0)],
    )
    def test_last_page_offset(self, total: int, last: int) -> None:
        assert compute_pagination(skip=0, limit=10, total=total).last == last

    def test_single_page(self) -> None:
        assert not compute_pagination(skip=0, limit=10, total=10).has_multiple_pages
        assert compute_pagination(skip=0, limit=10, total=11).has_multiple_pages

    def test_last_opens_the_final_non_empty_page(self) -> None:
        for limit in (1, 7, 10):
            for total in range(1, 60):
                last = compute_pagination(skip=0, limit=limit, total=total).last
                assert last % limit == 0
                assert last < total <= last + limit

    def test_limit_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            compute_pagination(skip=0, limit=0, total=10)
