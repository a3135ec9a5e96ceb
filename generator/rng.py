"""
Seeded PRNG — linear-congruential generator + Box-Muller sampler.

The stream depends only on integer and float arithmetic, so the same seed
reproduces the same stimuli on every platform. Replayed sessions rely on this.
"""

from __future__ import annotations

import math

_LCG_A = 1664525
_LCG_C = 1013904223
_MASK_32 = 0xFFFFFFFF
_TWO_32 = 4294967296.0


def mask_seed(seed: int) -> int:
    """Reduce any integer seed to an unsigned 32-bit state."""
    return int(seed) & _MASK_32


def next_uniform(state: int) -> tuple[float, int]:
    """Advance the LCG once. Returns (u in [0, 1), new_state)."""
    new_state = (_LCG_A * state + _LCG_C) & _MASK_32
    return new_state / _TWO_32, new_state


def next_gaussian_pair(state: int) -> tuple[tuple[float, float], int]:
    """
    Draw two independent standard normals with the Box-Muller transform.

    u1 is resampled while it is exactly 0 so the logarithm stays finite.
    """
    u1 = 0.0
    while u1 == 0.0:
        u1, state = next_uniform(state)
    u2, state = next_uniform(state)
    radius = math.sqrt(-2.0 * math.log(u1))
    angle = 2.0 * math.pi * u2
    return (radius * math.cos(angle), radius * math.sin(angle)), state


class SeededRandom:
    """Stateful wrapper around the functional LCG stream."""

    def __init__(self, seed: int = 0):
        self.state = mask_seed(seed)

    def random(self) -> float:
        u, self.state = next_uniform(self.state)
        return u

    def gaussian_pair(self) -> tuple[float, float]:
        pair, self.state = next_gaussian_pair(self.state)
        return pair

    def uniform(self, a: float = 0.0, b: float = 1.0) -> float:
        return a + self.random() * (b - a)

    def normal(self, mu: float = 0.0, sigma: float = 1.0) -> float:
        """Single normal deviate; the sine half of the pair is discarded."""
        z, _ = self.gaussian_pair()
        return mu + sigma * z
