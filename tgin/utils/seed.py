# tgin/utils/seed.py
from __future__ import annotations

from typing import List, Union

import numpy as np
from numpy.random import Generator, default_rng

SeedLike = Union[None, int, np.random.SeedSequence, Generator]


def make_rng(seed: SeedLike = None) -> Generator:
    """Return ``seed`` if it already is a Generator, otherwise build one from it."""
    if isinstance(seed, Generator):
        return seed
    if isinstance(seed, bool):
        raise TypeError("seed must be an int, SeedSequence, Generator or None")
    return default_rng(seed)


def spawn_rngs(rng: Generator, n: int) -> List[Generator]:
    """Independent child generators, one per worker; advances ``rng`` deterministically."""
    if n < 1:
        raise ValueError("n must be positive")
    return list(rng.spawn(n))
