from __future__ import annotations

import pytest

from usersapi.pagination import PageLink, PageRequest, paginate


@pytest.mark.parametrize(
    ("number", "size", "expected"),
    [
        (1, 0, PageRequest(1, 1)),
        (1, 1000, PageRequest(1, 20)),
        (0, 5, PageRequest(1, 5)),
        (-3, 5, PageRequest(1, 5)),
        (None, None, PageRequest(1, 10)),
        (4, 20, PageRequest(4, 20)),
    ],
)
def test_clamping(number, size, expected) -> None:
    assert PageRequest.clamped(number, size) == expected


def test_first_and_last_page_of_three_users() -> None:
    first = paginate(PageRequest.clamped(1, 2), total_count=3)
    assert first.total_pages == 2
    assert first.has_next is True
    assert first.has_previous is False
    assert first.previous_link is None
    assert first.next_link == PageLink(page_number=2, page_size=2)

    last = paginate(PageRequest.clamped(2, 2), total_count=3)
    assert last.has_next is False
    assert last.has_previous is True
    assert last.previous_link == PageLink(page_number=1, page_size=2)
    assert last.next_link is None


def test_empty_collection_has_no_pages() -> None:
    info = paginate(PageRequest.clamped(1, 10), total_count=0)

    assert info.total_pages == 0
    assert info.has_next is False
    assert info.has_previous is False


def test_exact_multiple_of_page_size() -> None:
    info = paginate(PageRequest.clamped(2, 5), total_count=10)

    assert info.total_pages == 2
    assert info.has_next is False


def test_page_past_the_end_links_back_to_last_page() -> None:
    info = paginate(PageRequest.clamped(5, 2), total_count=3)

    assert info.has_next is False
    assert info.previous_link == PageLink(page_number=2, page_size=2)


def test_page_past_the_end_of_empty_collection() -> None:
    info = paginate(PageRequest.clamped(3, 2), total_count=0)

    assert info.previous_link == PageLink(page_number=2, page_size=2)
