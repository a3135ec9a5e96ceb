"""
Mixture stimulus — a noisy linear band plus two mirrored outlier clusters.

The overall r of a band-plus-clusters scatterplot has no closed form, so the
band noise is tuned by bisection until the sample r lands within tolerance
of the target. Every iteration reuses the same seed: the band comes from the
cached base vectors and the clusters from one fixed stream, which makes r a
continuous function of the noise and keeps the bisection bracket valid.

Data coordinates are [0, 100] on both axes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from config import settings
from generator.base import BaseCache
from generator.rng import SeededRandom
from generator.state import Point
from generator.stats import pearson

CLUSTER_SEED_OFFSET = 7919


@dataclass
class MixtureConfig:
    n_line: int = 70
    n_tl: int = 5
    n_br: int = 5
    slope: float = 0.7
    intercept: float = 5.0
    cluster_center: tuple[float, float] = (10.0, 90.0)
    cluster_sd: float = 2.3
    pad: float = 2.0
    extent: float = 100.0
    noise_max: float = settings.MIXTURE_NOISE_MAX


@dataclass
class MixtureResult:
    points: tuple[Point, ...]
    r: float
    noise: float
    iterations: int
    converged: bool


def _in_bounds(x: float, y: float, config: MixtureConfig) -> bool:
    lo, hi = config.pad, config.extent - config.pad
    return lo <= x <= hi and lo <= y <= hi


def _sample_cluster(rng: SeededRandom, config: MixtureConfig) -> Point:
    """Rejection-sample one cluster point; fall back to the cluster center."""
    cx, cy = config.cluster_center
    for _ in range(50):
        x = rng.normal(cx, config.cluster_sd)
        y = rng.normal(cy, config.cluster_sd)
        if _in_bounds(x, y, config):
            return Point(x, y)
    return Point(cx, cy)


def _clusters(seed: int, config: MixtureConfig) -> list[Point]:
    """Top-left cluster, then the bottom-right cluster as its mirror image."""
    rng = SeededRandom(seed + CLUSTER_SEED_OFFSET)
    top_left = [_sample_cluster(rng, config) for _ in range(config.n_tl)]

    cx, cy = config.cluster_center
    mx, my = config.extent - cx, config.extent - cy
    bottom_right = [
        Point(mx + (p.y - cy), my + (p.x - cx))
        for p in top_left[: config.n_br]
    ]
    return top_left + bottom_right


def _band(seed: int, noise: float, config: MixtureConfig, cache: BaseCache) -> list[Point]:
    """
    Band points with exact in-band r = slope / sqrt(slope² + noise²).

    Both axes are scaled to fit the padded box; the y shrink factor varies
    continuously with noise and leaves the band's r untouched.
    """
    if config.n_line < 2:
        return []
    base = cache.get(config.n_line, seed)
    center = 0.5 * config.extent
    half = center - config.pad

    a = half / (float(np.max(np.abs(base.xs))) or 1.0)
    x = center + a * base.xs

    y_raw = config.slope * (x - center) + noise * a * base.zperp
    cy = config.intercept + config.slope * center
    half_y = min(cy - config.pad, config.extent - config.pad - cy)
    shrink = min(1.0, half_y / (float(np.max(np.abs(y_raw))) or 1.0))
    y = cy + shrink * y_raw

    return [Point(float(px), float(py)) for px, py in zip(x, y)]


def build_mixture(
    seed: int,
    noise: float,
    config: Optional[MixtureConfig] = None,
    cache: Optional[BaseCache] = None,
) -> tuple[Point, ...]:
    """Assemble one band-plus-clusters dataset at a given band noise."""
    config = config or MixtureConfig()
    cache = cache if cache is not None else BaseCache()
    return tuple(_band(seed, noise, config, cache) + _clusters(seed, config))


def feasible_range(
    seed: int,
    config: Optional[MixtureConfig] = None,
    cache: Optional[BaseCache] = None,
) -> tuple[float, float]:
    """r at the two ends of the noise interval, as (low, high)."""
    config = config or MixtureConfig()
    cache = cache if cache is not None else BaseCache()
    r_quiet = pearson(build_mixture(seed, 0.0, config, cache))
    r_noisy = pearson(build_mixture(seed, config.noise_max, config, cache))
    return min(r_quiet, r_noisy), max(r_quiet, r_noisy)


def tune_mixture(
    target_r: float,
    seed: int = 95,
    config: Optional[MixtureConfig] = None,
    tol: float = settings.MIXTURE_TOL,
    max_iter: int = settings.MIXTURE_MAX_ITER,
    cache: Optional[BaseCache] = None,
) -> MixtureResult:
    """
    Bisect band noise in [0, noise_max] until |r - target_r| <= tol.

    More noise lowers r, so a candidate above the target moves the lower
    bound up. If the target lies outside feasible_range() the closest
    candidate seen is returned with converged=False.
    """
    config = config or MixtureConfig()
    cache = cache if cache is not None else BaseCache()

    lo, hi = 0.0, config.noise_max
    best: Optional[MixtureResult] = None
    best_err = float("inf")

    for it in range(max_iter):
        mid = (lo + hi) / 2
        points = build_mixture(seed, mid, config, cache)
        r = pearson(points)
        if r is None:
            break
        err = abs(r - target_r)
        if err < best_err:
            best_err = err
            best = MixtureResult(points, r, mid, it + 1, False)
        if err <= tol:
            return MixtureResult(points, r, mid, it + 1, True)
        if r > target_r:
            lo = mid
        else:
            hi = mid

    if best is None:
        return MixtureResult((), 0.0, 0.0, 0, False)
    best.iterations = max_iter
    return best
