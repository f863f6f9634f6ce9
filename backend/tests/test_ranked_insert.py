import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from models.account import AccountToken
from utils.ranked_insert import (
    binary_search,
    insert_bounded_descending,
    search_insert,
    sort_descending,
)


@pytest.mark.parametrize(
    "nums,target,expected",
    [
        ([1, 3, 5, 6], 5, 2),
        ([1, 3, 5, 6], 2, 1),
        ([1, 3, 5, 6], 7, 4),
        ([1, 3, 5, 6], 0, 0),
        ([], 42, 0),
        ([100, 300], 300, 1),
        ([100, 300], 150, 1),
        ([1, 3, 3, 3, 5], 3, 1),
    ],
)
def test_search_insert_returns_match_or_insertion_point(nums, target, expected):
    assert search_insert(nums, target) == expected


def test_binary_search_finds_index_or_minus_one():
    nums = [2, 4, 8, 16, 32]
    assert binary_search(nums, 16) == 3
    assert binary_search(nums, 2) == 0
    assert binary_search(nums, 5) == -1
    assert binary_search([], 5) == -1
    assert binary_search([1, 3, 3, 3, 5], 3) == 1


def _tokens(entry: AccountToken) -> int:
    return entry.tokens


def test_insert_bounded_descending_keeps_capacity_and_order():
    entries: list[AccountToken] = []
    for idx, tokens in enumerate([5, 50, 20, 1, 40, 30]):
        insert_bounded_descending(entries, AccountToken(id=f"a{idx}", tokens=tokens), 4, _tokens)

    assert [e.tokens for e in entries] == [50, 40, 30, 20]


def test_insert_bounded_descending_keeps_insertion_order_on_ties():
    entries = [AccountToken(id="first", tokens=10)]
    insert_bounded_descending(entries, AccountToken(id="second", tokens=10), 5, _tokens)
    insert_bounded_descending(entries, AccountToken(id="top", tokens=11), 5, _tokens)

    assert [e.id for e in entries] == ["top", "first", "second"]


def test_insert_bounded_descending_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        insert_bounded_descending([], AccountToken(id="a", tokens=1), 0, _tokens)


def test_sort_descending_is_stable():
    entries = [
        AccountToken(id="a", tokens=1),
        AccountToken(id="b", tokens=3),
        AccountToken(id="c", tokens=1),
        AccountToken(id="d", tokens=3),
    ]
    sort_descending(entries, _tokens)
    assert [e.id for e in entries] == ["b", "d", "a", "c"]
