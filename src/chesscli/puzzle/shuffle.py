"""Puzzle ordering."""

from __future__ import annotations

import random
from typing import Sequence, TypeVar

T = TypeVar("T")


def shuffle_puzzles(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a uniformly shuffled copy of ``items``."""
    shuffled = list(items)
    (rng or random).shuffle(shuffled)
    return shuffled
