"""Common utility types and functions for the projmap containers.

This module provides the small set of primitives shared by the ordered tree
and the projected map built on top of it.
"""

from __future__ import annotations

from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, List, cast

__all__ = [
    "Box",
    "Impossible",
    "Iterating",
    "Missing",
    "MISSING",
    "Ordering",
    "Sized",
    "compare",
    "equal_items",
]


class Impossible(Exception):
    """Exception raised when encountering theoretically impossible states.

    Used to indicate internal consistency violations in data structure operations.
    """

    pass


@dataclass(frozen=True)
class Missing:
    """Sentinel type for arguments and results that may legitimately be None."""

    pass


MISSING = Missing()


@dataclass
class Box[T]:
    """Mutable container for a single value.

    Provides a reference type wrapper for values that need to be updated
    within immutable contexts.
    """

    value: T


class Sized(metaclass=ABCMeta):
    @abstractmethod
    def size(self) -> int: ...

    def null(self) -> bool:
        return self.size() == 0

    def __bool__(self) -> bool:
        return not self.null()

    def __len__(self) -> int:
        return self.size()


class Iterating[U](metaclass=ABCMeta):
    @abstractmethod
    def iter(self) -> Iterator[U]: ...

    def list(self) -> List[U]:
        return list(self.iter())

    def __iter__(self) -> Iterator[U]:
        return self.iter()


class Ordering(Enum):
    """Enumeration representing the result of a comparison operation."""

    Lt = -1
    Eq = 0
    Gt = 1


def compare[T](a: T, b: T) -> Ordering:
    """Compare two values and return their ordering relationship.

    Uses the objects' __eq__ and __lt__ methods to determine the comparison result.

    Args:
        a: First value to compare.
        b: Second value to compare.

    Returns:
        Ordering indicating the relationship between a and b.
    """
    # Generic protocols are half-baked, so compare through Any
    lhs = cast(Any, a)
    if lhs == b:
        return Ordering.Eq
    elif lhs < b:
        return Ordering.Lt
    else:
        return Ordering.Gt


def equal_items(agen: Iterator[Any], bgen: Iterator[Any]) -> bool:
    """Check two iterators for element-wise equality using only __eq__.

    Unlike a lexicographic comparison this never orders elements, so it is
    safe for sequences whose elements have no ordering.

    Args:
        agen: Iterator producing elements from the first sequence.
        bgen: Iterator producing elements from the second sequence.

    Returns:
        True if both iterators yield the same number of equal elements.
    """
    sentinel = MISSING
    while True:
        a = next(agen, sentinel)
        b = next(bgen, sentinel)
        if a is sentinel or b is sentinel:
            return a is sentinel and b is sentinel
        if a != b:
            return False
