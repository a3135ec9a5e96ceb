"""
Base-vector builder — the seed-keyed raw material of every stimulus.

Building the base is the expensive, cacheable half of generation. Mixing to
a target r (generator.state.mix) is the cheap half, called on every slider
move. Reusing one base across a session keeps the point cloud's shape fixed
so slider motion reads as a smooth stretch instead of a re-randomised cloud.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from generator.errors import InsufficientSamples
from generator.rng import SeededRandom, mask_seed
from generator.stats import zscore


@dataclass(frozen=True)
class BaseVectors:
    """Zero-mean, unit-variance, mutually orthogonal (in-sample) pair."""
    xs: np.ndarray
    zperp: np.ndarray
    seed: int
    sample_size: int


def build_base(sample_size: int, seed: int) -> BaseVectors:
    """
    Draw and orthogonalise the base vectors for (sample_size, seed).

    Raises:
        InsufficientSamples: if sample_size < 2.
    """
    if sample_size < 2:
        raise InsufficientSamples(sample_size)

    rng = SeededRandom(seed)
    x0 = np.empty(sample_size, dtype=np.float64)
    z0 = np.empty(sample_size, dtype=np.float64)
    for i in range(sample_size):
        x0[i], z0[i] = rng.gaussian_pair()

    xs = zscore(x0)

    # Gram-Schmidt: drop the part of Z0 explained by Xs
    denom = float(np.dot(xs, xs)) or 1e-12
    beta = float(np.dot(xs, z0)) / denom
    zperp = zscore(z0 - beta * xs)

    xs.flags.writeable = False
    zperp.flags.writeable = False
    return BaseVectors(xs=xs, zperp=zperp, seed=mask_seed(seed), sample_size=sample_size)


class BaseCache:
    """
    Read-through memo of base vectors keyed by (seed, n).

    The key space is the number of distinct seeds used in a session, so there
    is no eviction.
    """

    def __init__(self):
        self._entries: dict[tuple[int, int], BaseVectors] = {}
        self.hits = 0
        self.misses = 0

    def get(self, sample_size: int, seed: int) -> BaseVectors:
        key = (mask_seed(seed), sample_size)
        base: Optional[BaseVectors] = self._entries.get(key)
        if base is None:
            self.misses += 1
            base = build_base(sample_size, seed)
            self._entries[key] = base
        else:
            self.hits += 1
        return base

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __contains__(self, key: tuple[int, int]) -> bool:
        seed, sample_size = key
        return (mask_seed(seed), sample_size) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
