"""
Correlation mixing — the ground-truth engine.

Python fixes the exact point set BEFORE rendering: the sample Pearson r of
every dataset produced here equals the requested target to floating-point
precision, so the stimulus carries its own answer key.

Pipeline: base vectors (Xs, Zperp) → Y = r·Xs + sqrt(1 − r²)·Zperp →
optional slope matching → per-axis affine fit into the display box. Only
affine maps follow the mixing step, and those never change r.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from config import settings
from generator.base import BaseCache, BaseVectors, build_base
from generator.errors import InsufficientSamples
from generator.stats import ols_slope, sample_sd

Range = tuple[float, float]


@dataclass(frozen=True)
class Point:
    """A single scatterplot point in data coordinates."""
    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Point:
        return cls(x=float(d["x"]), y=float(d["y"]))


@dataclass
class GenerationRequest:
    """The generator's complete input tuple."""
    target_correlation: float = 0.7
    sample_size: int = 100
    seed: int = 777
    target_slope: Optional[float] = None
    x_range: Range = (0.0, 10.0)
    y_range: Range = (0.0, 10.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_correlation": self.target_correlation,
            "sample_size": self.sample_size,
            "seed": self.seed,
            "target_slope": self.target_slope,
            "x_range": list(self.x_range),
            "y_range": list(self.y_range),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> GenerationRequest:
        d = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        for key in ("x_range", "y_range"):
            if key in d:
                d[key] = tuple(d[key])
        return cls(**d)


@dataclass(frozen=True)
class GeneratedDataset:
    """Immutable output of one generation call."""
    points: tuple[Point, ...]
    actual_slope: float
    correlation: float  # clamped target actually mixed
    seed: int
    sample_size: int
    target_slope: Optional[float] = None
    x_range: Range = (0.0, 10.0)
    y_range: Range = (0.0, 10.0)
    _xs: np.ndarray = field(default=None, repr=False, compare=False)
    _ys: np.ndarray = field(default=None, repr=False, compare=False)

    @property
    def xs(self) -> np.ndarray:
        return self._xs

    @property
    def ys(self) -> np.ndarray:
        return self._ys

    def to_dict(self) -> dict[str, Any]:
        return {
            "points": [p.to_dict() for p in self.points],
            "actual_slope": self.actual_slope,
            "correlation": self.correlation,
            "seed": self.seed,
            "sample_size": self.sample_size,
            "target_slope": self.target_slope,
        }


def clamp_correlation(r: float) -> float:
    """Clamp to [-R_CLAMP, R_CLAMP]; non-finite input degrades to 0."""
    try:
        r = float(r)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(r):
        return 0.0
    limit = settings.R_CLAMP
    return max(-limit, min(limit, r))


def _box(rng: Range) -> tuple[float, float]:
    """Center and half-width (after padding) of a target range."""
    center = 0.5 * (rng[0] + rng[1])
    span = max(1e-9, rng[1] - rng[0])
    return center, 0.5 * span * (1.0 - settings.PAD_FRAC)


def mix(
    base: BaseVectors,
    target_correlation: float,
    target_slope: Optional[float] = None,
    x_range: Range = (0.0, 10.0),
    y_range: Range = (0.0, 10.0),
) -> GeneratedDataset:
    """
    Mix cached base vectors to the target r and fit them into the box.

    With a target slope, only its magnitude is used: the OLS slope of the
    output is |target_slope| with the sign of r. For r == 0 the sign is +1
    and the mix uses r = +SLOPE_R_FLOOR, which squeezes x towards the center
    as the requested slope grows.
    """
    r = clamp_correlation(target_correlation)
    # a zero or non-finite slope magnitude has no usable ratio
    has_slope = target_slope is not None and math.isfinite(target_slope) and target_slope != 0
    r_mix = settings.SLOPE_R_FLOOR if has_slope and r == 0.0 else r
    xs = base.xs
    y0 = r_mix * xs + math.sqrt(1.0 - r_mix * r_mix) * base.zperp

    cx, half_x = _box(x_range)
    cy, half_y = _box(y_range)
    sx0 = sample_sd(xs)
    sy0 = sample_sd(y0)
    sigma = settings.SIGMA_THRESHOLD

    if has_slope:
        r_abs = max(abs(r_mix), settings.SLOPE_R_FLOOR)
        ratio = abs(target_slope) / r_abs

        a_max_x = half_x / (sigma * sx0)
        a_max_y = half_y / (sigma * sx0 * ratio)
        a = max(1e-9, min(a_max_x, a_max_y) * settings.HEADROOM)
        # never negative: sign(slope) already follows sign(r)
        scale_y = ratio * a * sx0 / sy0
    else:
        target_slope = None
        a = max(1e-9, half_x / (sigma * sx0) * settings.HEADROOM)
        scale_y = max(1e-9, half_y / (sigma * sy0) * settings.HEADROOM)

    xp = cx + a * xs
    yp = cy + scale_y * y0
    xp.flags.writeable = False
    yp.flags.writeable = False

    points = tuple(Point(float(x), float(y)) for x, y in zip(xp, yp))
    return GeneratedDataset(
        points=points,
        actual_slope=ols_slope(xp, yp),
        correlation=r,
        seed=base.seed,
        sample_size=base.sample_size,
        target_slope=target_slope,
        x_range=tuple(x_range),
        y_range=tuple(y_range),
        _xs=xp,
        _ys=yp,
    )


def generate(
    target_correlation: float,
    sample_size: int = 100,
    seed: int = 777,
    target_slope: Optional[float] = None,
    x_range: Range = (0.0, 10.0),
    y_range: Range = (0.0, 10.0),
    cache: Optional[BaseCache] = None,
) -> Optional[GeneratedDataset]:
    """
    Generate a point set whose sample r equals target_correlation.

    Returns None when sample_size < 2 (correlation undefined). Passing a
    BaseCache reuses the base for repeated calls with the same (seed, n).
    """
    try:
        if cache is not None:
            base = cache.get(sample_size, seed)
        else:
            base = build_base(sample_size, seed)
    except InsufficientSamples:
        return None
    return mix(base, target_correlation, target_slope, x_range, y_range)


def generate_request(
    request: GenerationRequest,
    cache: Optional[BaseCache] = None,
) -> Optional[GeneratedDataset]:
    return generate(
        request.target_correlation,
        request.sample_size,
        request.seed,
        request.target_slope,
        request.x_range,
        request.y_range,
        cache=cache,
    )
