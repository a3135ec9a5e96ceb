"""
Central configuration for the correlation stimulus generator.
All core constants and environment-driven settings live here.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment / .env file."""

    # ── Generator ───────────────────────────────────────────────────
    DEFAULT_SEED: int = 777
    DEFAULT_SAMPLE_SIZE: int = 100
    MAX_SAMPLE_SIZE: int = 5000       # host-supplied point counts are capped here
    DEFAULT_CORRELATION: float = 0.7
    R_CLAMP: float = Field(default=0.999, gt=0.0, lt=1.0)
    SLOPE_R_FLOOR: float = 1e-6       # |r| used when r == 0 on the slope path
    PAD_FRAC: float = 0.05            # breathing room inside the target box
    SIGMA_THRESHOLD: float = 2.5      # sds that must fit in each half-range
    HEADROOM: float = 0.95            # share of the fitted scale actually used

    # ── Display ─────────────────────────────────────────────────────
    DOMAIN_PAD_FRAC: float = 0.03
    AXIS_MODE: str = "fixed"          # "fixed" | "tight"

    # ── Animation ───────────────────────────────────────────────────
    CORRELATION_TWEEN_MS: float = 100.0
    READOUT_TWEEN_MS: float = 200.0
    CORRELATION_SNAP: float = 0.01
    READOUT_SNAP: float = 0.005
    FRAME_INTERVAL_MS: float = 16.0

    # ── Mixture variant ─────────────────────────────────────────────
    MIXTURE_TOL: float = 0.015
    MIXTURE_MAX_ITER: int = 28
    MIXTURE_NOISE_MAX: float = 50.0

    # ── Isomorphic variants ─────────────────────────────────────────
    NUM_ISOMORPHISMS: int = 5

    # ── Rendering ───────────────────────────────────────────────────
    CANVAS_WIDTH: int = 412
    CANVAS_HEIGHT: int = 400

    # ── Paths ───────────────────────────────────────────────────────
    PROJECT_ROOT: Path = Path(__file__).parent
    SESSIONS_DIR: Optional[Path] = None
    OUTPUTS_DIR: Optional[Path] = None

    @model_validator(mode="after")
    def _set_default_paths(self) -> Settings:
        if self.SESSIONS_DIR is None:
            self.SESSIONS_DIR = self.PROJECT_ROOT / "sessions"
        if self.OUTPUTS_DIR is None:
            self.OUTPUTS_DIR = self.PROJECT_ROOT / "outputs"
        return self

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton instance
settings = Settings()
