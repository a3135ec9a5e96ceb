"""
Stimulus parameters — tolerant coercion of host-supplied configuration.

The study runner hands over loosely typed values (numbers as strings,
booleans as "1"/"false", ranges as "[0, 10]" or "0..10"). A malformed value
falls back to its default instead of raising: the participant's session must
keep rendering.
"""

from __future__ import annotations

import math
import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, field_validator

from config import settings
from generator.state import GenerationRequest

_RANGE_STRIP = re.compile(r"[\[\]()\s]")
_RANGE_SPLIT = re.compile(r",|;|:|\.\.")


def _is_nil(v: Any) -> bool:
    return v is None or (isinstance(v, str) and v.strip() == "")


def coerce_number(v: Any, default: Optional[float]) -> Optional[float]:
    if _is_nil(v) or isinstance(v, bool):
        return default
    try:
        n = float(v.strip() if isinstance(v, str) else v)
    except (TypeError, ValueError):
        return default
    return n if math.isfinite(n) else default


def coerce_bool(v: Any, default: bool) -> bool:
    if _is_nil(v):
        return default
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in ("true", "1"):
        return True
    if s in ("false", "0"):
        return False
    return default


def coerce_range(v: Any, default: tuple[float, float]) -> tuple[float, float]:
    """Accepts [lo, hi], (lo, hi) or strings like "[0, 10]", "0..10", "0;10"."""
    if _is_nil(v):
        return default
    if isinstance(v, (list, tuple)) and len(v) >= 2:
        lo = coerce_number(v[0], default[0])
        hi = coerce_number(v[1], default[1])
    elif isinstance(v, str):
        parts = [p for p in _RANGE_SPLIT.split(_RANGE_STRIP.sub("", v)) if p]
        if len(parts) < 2:
            return default
        lo = coerce_number(parts[0], default[0])
        hi = coerce_number(parts[1], default[1])
    else:
        return default
    if hi <= lo:
        return default
    return (lo, hi)


class StimulusParameters(BaseModel):
    """Validated view of the host's `parameters` object."""

    taskid: str = "correlation"
    correlation: float = settings.DEFAULT_CORRELATION
    slope: Optional[float] = None
    seed: int = settings.DEFAULT_SEED
    num_points: int = settings.DEFAULT_SAMPLE_SIZE
    x_range: tuple[float, float] = (0.0, 10.0)
    y_range: tuple[float, float] = (0.0, 10.0)
    axis_mode: Literal["fixed", "tight"] = "fixed"
    domain_pad_frac: float = settings.DOMAIN_PAD_FRAC
    show_slope_line: bool = False
    show_title: bool = False

    @field_validator("taskid", mode="before")
    @classmethod
    def _taskid(cls, v: Any) -> str:
        return "correlation" if _is_nil(v) else str(v)

    @field_validator("correlation", mode="before")
    @classmethod
    def _correlation(cls, v: Any) -> float:
        return coerce_number(v, settings.DEFAULT_CORRELATION)

    @field_validator("slope", mode="before")
    @classmethod
    def _slope(cls, v: Any) -> Optional[float]:
        return coerce_number(v, None)

    @field_validator("seed", mode="before")
    @classmethod
    def _seed(cls, v: Any) -> int:
        return int(coerce_number(v, settings.DEFAULT_SEED))

    @field_validator("num_points", mode="before")
    @classmethod
    def _num_points(cls, v: Any) -> int:
        n = int(coerce_number(v, settings.DEFAULT_SAMPLE_SIZE))
        return min(n, settings.MAX_SAMPLE_SIZE)

    @field_validator("x_range", "y_range", mode="before")
    @classmethod
    def _range(cls, v: Any) -> tuple[float, float]:
        return coerce_range(v, (0.0, 10.0))

    @field_validator("axis_mode", mode="before")
    @classmethod
    def _axis_mode(cls, v: Any) -> str:
        s = "" if _is_nil(v) else str(v).strip().lower()
        return s if s in ("fixed", "tight") else "fixed"

    @field_validator("domain_pad_frac", mode="before")
    @classmethod
    def _pad(cls, v: Any) -> float:
        n = coerce_number(v, settings.DOMAIN_PAD_FRAC)
        return n if n >= 0 else settings.DOMAIN_PAD_FRAC

    @field_validator("show_slope_line", "show_title", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> bool:
        return coerce_bool(v, False)

    @classmethod
    def from_host(cls, parameters: Optional[dict[str, Any]]) -> StimulusParameters:
        """Build from a host dict, accepting camelCase keys as well."""
        aliases = {
            "numPoints": "num_points",
            "xRange": "x_range",
            "yRange": "y_range",
            "axisMode": "axis_mode",
            "domainPadFrac": "domain_pad_frac",
            "showSlopeLine": "show_slope_line",
            "showTitle": "show_title",
        }
        data = {}
        for key, value in (parameters or {}).items():
            name = aliases.get(key, key)
            if name in cls.model_fields:
                data[name] = value
        return cls(**data)

    def to_request(self) -> GenerationRequest:
        return GenerationRequest(
            target_correlation=self.correlation,
            sample_size=self.num_points,
            seed=self.seed,
            target_slope=self.slope,
            x_range=self.x_range,
            y_range=self.y_range,
        )
