"""
Fixed-point-free shuffles for giver -> recipient pairing.

``derange(items)`` returns a reordering of ``items`` in which no position holds
the value it held in the input, so pairing ``items[i]`` with ``result[i]``
never assigns anyone to themself.

Each attempt is a Sattolo-style shuffle (``j`` drawn from ``[0, i)``) of a
working list. Up to MAX_SHUFFLE_ATTEMPTS attempts are checked for fixed points;
if all of them have one, the input rotated by one position is returned.

Known limitation: the result is not a uniform sample over all derangements.
Sattolo only produces single cycles from the input order, and the rotation
fallback is deterministic.
"""
from __future__ import annotations

import random
from typing import Any, Protocol, Sequence, TypeVar

T = TypeVar("T")

MAX_SHUFFLE_ATTEMPTS = 5


class RandomSource(Protocol):
    def random(self) -> float: ...


def _shuffle(arr: list[Any], rng: RandomSource) -> None:
    for i in range(len(arr) - 1, 0, -1):
        j = int(rng.random() * i)
        arr[i], arr[j] = arr[j], arr[i]


def _has_fixed_point(shuffled: Sequence[Any], original: Sequence[Any]) -> bool:
    return any(a == b for a, b in zip(shuffled, original))


def rotate(items: Sequence[T]) -> list[T]:
    n = len(items)
    return [items[(i + 1) % n] for i in range(n)]


def derange(items: Sequence[T], rng: RandomSource | None = None) -> list[T]:
    """
    Returns a fixed-point-free permutation of ``items``.

    Inputs with fewer than 2 elements have no such permutation; an empty list
    is returned and callers must enforce their own minimum size.
    """
    if len(items) < 2:
        return []

    rng = rng or random
    arr = list(items)
    for _ in range(MAX_SHUFFLE_ATTEMPTS):
        _shuffle(arr, rng)
        if not _has_fixed_point(arr, items):
            return arr

    return rotate(items)
