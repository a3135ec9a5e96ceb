"""
Explorer — the interactive correlation stimulus.

Connects the host (parameters, set_answer sink, provenance state), the
generator, the tweening layer and the provenance session:

1. Slider input is recorded as an action and tweens the displayed r; each
   frame regenerates the points from one cached base.
2. Clicks add user points, which are tracked apart from the generated set
   and only combined with it for the live r readout.
3. After every action the answer blob is pushed to set_answer.
4. A provenance state from a replayed session restores the same stimulus.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from config import settings
from generator.base import BaseCache
from generator.params import StimulusParameters, coerce_number
from generator.renderer import PlotStyle, render_svg
from generator.state import Point
from generator.stats import format_correlation, interpret_correlation, pearson
from generator.tween import (
    Animator,
    CorrelationTransition,
    FrameScheduler,
    ManualFrameScheduler,
    ease_out_cubic,
)
from session import Session, build_answer, initial_state

EXPLORER_DEFAULTS: dict[str, Any] = {
    "correlation": 0.8,
    "numPoints": 30,
    "seed": 42,
}


def _recorded_point(data: Any) -> Optional[Point]:
    """Point from a recorded {x, y} dict; None when malformed."""
    if not isinstance(data, dict):
        return None
    x, y = coerce_number(data.get("x"), None), coerce_number(data.get("y"), None)
    if x is None or y is None:
        return None
    return Point(x, y)


@dataclass
class ExplorerState:
    """Mutable state of the explorer."""
    correlation_strength: float = 0.8
    display_correlation: Optional[float] = None
    generated_points: tuple[Point, ...] = ()
    user_points: list[Point] = field(default_factory=list)
    displayed_r: Optional[float] = None


class CorrelationExplorer:
    """
    Interactive explorer controller.

    Can be driven by any host that forwards input events and supplies a
    frame scheduler; headless use and tests run on ManualFrameScheduler.
    """

    def __init__(
        self,
        parameters: Optional[dict[str, Any]] = None,
        set_answer: Optional[Callable[[dict[str, Any]], None]] = None,
        provenance_state: Optional[dict[str, Any]] = None,
        scheduler: Optional[FrameScheduler] = None,
        cache: Optional[BaseCache] = None,
        session_id: Optional[str] = None,
        persist: bool = False,
    ):
        self.params = StimulusParameters.from_host({**EXPLORER_DEFAULTS, **(parameters or {})})
        self.set_answer = set_answer or (lambda answer: None)
        self.scheduler = scheduler or ManualFrameScheduler(settings.FRAME_INTERVAL_MS)
        self.cache = cache if cache is not None else BaseCache()

        start_r = self.params.correlation
        self.session = Session(
            session_id=session_id or str(uuid.uuid4())[:8],
            initial=initial_state(start_r),
            persist=persist,
        )
        self.state = ExplorerState(correlation_strength=start_r)

        self.transition = CorrelationTransition(
            self.scheduler,
            on_dataset=self._on_dataset,
            sample_size=self.params.num_points,
            seed=self.params.seed,
            cache=self.cache,
            duration_ms=settings.CORRELATION_TWEEN_MS,
            snap_threshold=settings.CORRELATION_SNAP,
            x_range=self.params.x_range,
            y_range=self.params.y_range,
        )
        self.readout = Animator(
            scheduler=self.scheduler,
            on_value=self._on_readout,
            duration_ms=settings.READOUT_TWEEN_MS,
            easing=ease_out_cubic,
            snap_threshold=settings.READOUT_SNAP,
        )

        self.transition.jump_to(start_r)
        if provenance_state:
            self.restore(provenance_state)
        self._push_answer()

    # ── Frame callbacks ──────────────────────────────────────────────

    def _on_dataset(self, dataset) -> None:
        self.state.generated_points = dataset.points
        self.state.display_correlation = self.transition.displayed_correlation
        self._update_readout()

    def _on_readout(self, value: float) -> None:
        self.state.displayed_r = value

    def _update_readout(self, animate: bool = True) -> None:
        r = self.combined_r
        if r is None:
            self.readout.cancel()
            self.readout.value = None
            self.state.displayed_r = None
        elif animate:
            self.readout.animate(r)
        else:
            self.readout.jump(r)

    # ── Derived values ───────────────────────────────────────────────

    @property
    def generated_r(self) -> Optional[float]:
        return pearson(self.state.generated_points)

    @property
    def combined_r(self) -> Optional[float]:
        return pearson([*self.state.generated_points, *self.state.user_points])

    def readout_text(self) -> dict[str, Any]:
        """Live r readout: value, formatted string and verbal label."""
        r = self.state.displayed_r
        return {
            "r": r,
            "formatted": format_correlation(r),
            "label": interpret_correlation(round(r, 2)) if r is not None else None,
            "generated_r": self.generated_r,
        }

    def _in_box(self, x: float, y: float) -> bool:
        (x0, x1), (y0, y1) = self.params.x_range, self.params.y_range
        return x0 <= x <= x1 and y0 <= y <= y1

    def _click(self, x: Any, y: Any) -> Optional[Point]:
        """Host click as a Point, or None when it is not a finite in-box position."""
        px, py = coerce_number(x, None), coerce_number(y, None)
        if px is None or py is None or not self._in_box(px, py):
            return None
        return Point(px, py)

    def _has_point(self, index: Any) -> bool:
        if isinstance(index, bool) or not isinstance(index, int):
            return False
        return 0 <= index < len(self.state.user_points)

    # ── Actions ──────────────────────────────────────────────────────

    def set_correlation(self, value: float) -> None:
        """Slider moved. Non-numeric input is ignored."""
        try:
            value = float(value)
        except (TypeError, ValueError):
            return
        if not math.isfinite(value):
            return
        self.session.apply("Slider Changed", "slider_change", value)
        self.state.correlation_strength = value
        self.transition.transition_to(value)
        self._push_answer()

    def add_user_point(self, x: float, y: float) -> bool:
        """Add a point; clicks outside the plot box are ignored."""
        point = self._click(x, y)
        if point is None:
            return False
        self.session.apply("User Point Added", "add_point", point.to_dict())
        self.state.user_points.append(point)
        self._after_points_changed()
        return True

    def delete_user_point(self, index: int) -> bool:
        if not self._has_point(index):
            return False
        self.session.apply("User Point Deleted", "delete_point", index)
        del self.state.user_points[index]
        self._after_points_changed()
        return True

    def move_user_point(self, index: int, x: float, y: float) -> bool:
        point = self._click(x, y)
        if point is None or not self._has_point(index):
            return False
        self.session.apply("User Point Moved", "move_point", {"index": index, **point.to_dict()})
        self.state.user_points[index] = point
        self._after_points_changed()
        return True

    def undo_user_point(self) -> bool:
        if not self.state.user_points:
            return False
        self.session.apply("User Point Undone", "undo_point")
        self.state.user_points.pop()
        self._after_points_changed()
        return True

    def clear_points(self) -> None:
        self.session.apply("Points Cleared", "clear_points")
        self.state.user_points = []
        self._after_points_changed()

    def _after_points_changed(self) -> None:
        self._update_readout()
        self._push_answer()

    # ── Replay ───────────────────────────────────────────────────────

    def restore(self, provenance_state: dict[str, Any]) -> None:
        """Jump (no tween) to a recorded provenance state."""
        if not isinstance(provenance_state, dict):
            return
        strength = provenance_state.get(
            "correlation_strength", provenance_state.get("correlationStrength")
        )
        points = provenance_state.get("user_points", provenance_state.get("userPoints"))

        self.state.correlation_strength = coerce_number(strength, self.state.correlation_strength)
        if isinstance(points, (list, tuple)):
            self.state.user_points = [p for p in map(_recorded_point, points) if p is not None]

        self.session.state = {
            "correlation_strength": self.state.correlation_strength,
            "user_points": [p.to_dict() for p in self.state.user_points],
        }
        self.transition.jump_to(self.state.correlation_strength)
        self._update_readout(animate=False)

    # ── Output ───────────────────────────────────────────────────────

    def answer(self) -> dict[str, Any]:
        r = self.combined_r
        return build_answer(
            self.session,
            self.params.taskid,
            {
                "correlationStrength": self.state.correlation_strength,
                "userPointCount": len(self.state.user_points),
                "combinedR": None if r is None else round(r, 4),
            },
        )

    def _push_answer(self) -> None:
        self.set_answer(self.answer())

    def render(self, style: Optional[PlotStyle] = None) -> Optional[str]:
        """SVG of the current frame, or None before any dataset exists."""
        dataset = self.transition.dataset
        if dataset is None:
            return None
        if style is None:
            style = PlotStyle(
                axis_mode=self.params.axis_mode,
                domain_pad_frac=self.params.domain_pad_frac,
                show_slope_line=self.params.show_slope_line,
                title=f"r = {format_correlation(self.generated_r)}" if self.params.show_title else None,
            )
        return render_svg(dataset, style, self.state.user_points)
