"""
Binary search and bounded ranking helpers.

Used by the token leaderboard for two things:
    search_insert             -- point-in-time lookups over ascending history timestamps
    insert_bounded_descending -- top-K list maintenance with a hard capacity
"""

import bisect
from typing import Callable, Sequence, TypeVar

T = TypeVar("T")


def binary_search(nums: Sequence[int], target: int) -> int:
    """Return the index of ``target`` in the ascending ``nums``, ``-1`` if absent.

    Time complexity O(log n), space O(1).
    """
    index = bisect.bisect_left(nums, target)
    if index < len(nums) and nums[index] == target:
        return index
    return -1


def search_insert(nums: Sequence[int], target: int) -> int:
    """Return where ``target`` sits in the ascending ``nums``.

    The index of the first exact match when present, else the index at which
    ``target`` would be inserted to keep the order.

    >>> search_insert([1, 3, 5, 6], 5)
    2
    >>> search_insert([1, 3, 5, 6], 0)
    0
    >>> search_insert([1, 3, 5, 6], 7)
    4

    Time complexity O(log n), space O(1).
    """
    return bisect.bisect_left(nums, target)


def sort_descending(entries: list[T], key: Callable[[T], int]) -> None:
    """Sort ``entries`` in place, highest key first.

    Python's sort is stable, so entries with equal keys keep their
    relative (insertion) order.
    """
    entries.sort(key=key, reverse=True)


def insert_bounded_descending(
    entries: list[T],
    entry: T,
    capacity: int,
    key: Callable[[T], int],
) -> list[T]:
    """Append ``entry``, re-sort descending and drop the smallest beyond ``capacity``.

    The list is mutated in place and returned for chaining.
    """
    if capacity < 1:
        raise ValueError(f"capacity must be >= 1, got {capacity}")

    entries.append(entry)
    sort_descending(entries, key)
    if len(entries) > capacity:
        del entries[capacity:]
    return entries
