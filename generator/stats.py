"""
Sample statistics shared by the generator, the explorer readout and tests.

Undefined results (too few points, zero variance) come back as None rather
than NaN so the display layer can hide the readout.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np


def _as_arrays(points: Iterable) -> tuple[np.ndarray, np.ndarray]:
    pts = list(points)
    xs = np.fromiter((float(p.x) for p in pts), dtype=np.float64, count=len(pts))
    ys = np.fromiter((float(p.y) for p in pts), dtype=np.float64, count=len(pts))
    return xs, ys


def sample_sd(values: np.ndarray) -> float:
    """Sample standard deviation (n-1), floored so it is never exactly 0."""
    n = len(values)
    m = values.mean()
    var = float(np.sum((values - m) ** 2)) / max(1, n - 1)
    return math.sqrt(max(var, 1e-12))


def zscore(values: np.ndarray) -> np.ndarray:
    """Center to mean 0 and scale to unit sample standard deviation."""
    values = np.asarray(values, dtype=np.float64)
    return (values - values.mean()) / sample_sd(values)


def sample_correlation(xs: Sequence[float], ys: Sequence[float]) -> Optional[float]:
    """Pearson r of two equal-length sequences, or None when undefined."""
    x = np.asarray(xs, dtype=np.float64)
    y = np.asarray(ys, dtype=np.float64)
    if len(x) < 2 or len(x) != len(y):
        return None
    dx = x - x.mean()
    dy = y - y.mean()
    num = float(np.sum(dx * dy))
    den = math.sqrt(float(np.sum(dx * dx))) * math.sqrt(float(np.sum(dy * dy)))
    if den == 0.0 or not math.isfinite(den):
        return None
    r = num / den
    if not math.isfinite(r):
        return None
    # -0.0 would print as "-0.00"
    return r + 0.0


def pearson(points: Iterable) -> Optional[float]:
    """Pearson r of a point sequence (anything with .x and .y)."""
    xs, ys = _as_arrays(points)
    return sample_correlation(xs, ys)


def ols_slope(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Least-squares slope; 0.0 when x has no variance."""
    x = np.asarray(xs, dtype=np.float64)
    y = np.asarray(ys, dtype=np.float64)
    dx = x - x.mean()
    den = float(np.sum(dx * dx))
    if den <= 0.0:
        return 0.0
    return float(np.sum(dx * (y - y.mean()))) / den


@dataclass(frozen=True)
class RegressionLine:
    slope: float
    intercept: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def least_squares(points: Iterable) -> Optional[RegressionLine]:
    """Fit y = slope*x + intercept. None for < 2 points or constant x."""
    xs, ys = _as_arrays(points)
    if len(xs) < 2:
        return None
    dx = xs - xs.mean()
    den = float(np.sum(dx * dx))
    if den == 0.0:
        return None
    slope = float(np.sum(dx * (ys - ys.mean()))) / den
    return RegressionLine(slope=slope, intercept=float(ys.mean()) - slope * float(xs.mean()))


def predictions(points: Iterable, line: RegressionLine) -> list[dict[str, float]]:
    """Observed vs. fitted value for each point (residual table rows)."""
    rows = []
    for p in points:
        predicted = line.predict(p.x)
        rows.append({
            "x": p.x,
            "y": p.y,
            "predicted": predicted,
            "residual": p.y - predicted,
        })
    return rows


def sse(rows: Iterable[dict[str, float]]) -> float:
    """Sum of squared residuals over prediction rows."""
    return sum(row["residual"] ** 2 for row in rows)


def clamp_unit(r: Optional[float]) -> Optional[float]:
    if r is None:
        return None
    return max(-1.0, min(1.0, r))


def interpret_correlation(r: float) -> str:
    """Verbal strength band shown next to the live r readout."""
    if r >= 0.8:
        return "Very Strong Positive"
    if r >= 0.6:
        return "Strong Positive"
    if r >= 0.4:
        return "Moderate Positive"
    if r >= 0.2:
        return "Weak Positive"
    if r > 0:
        return "Very Weak Positive"
    if r == 0:
        return "No Correlation"
    if r > -0.2:
        return "Very Weak Negative"
    if r > -0.4:
        return "Weak Negative"
    if r > -0.6:
        return "Moderate Negative"
    if r > -0.8:
        return "Strong Negative"
    return "Very Strong Negative"


def format_correlation(r: Optional[float], digits: int = 2) -> str:
    """Fixed-precision display string; an em dash when r is undefined."""
    if r is None:
        return "—"
    text = f"{r:.{digits}f}"
    # rounding can still produce "-0.00"
    if float(text) == 0.0:
        text = f"{0.0:.{digits}f}"
    return text
