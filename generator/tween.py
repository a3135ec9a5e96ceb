"""
Tweening — cancellable, frame-driven transitions between stimulus states.

Frames come from a host scheduler (a browser's requestAnimationFrame, a GUI
timer, or ManualFrameScheduler for headless runs and tests). At most one
tween per Animator is ever in flight: a new target cancels the pending frame
before the next one is requested, so two loops never race to set the
displayed points. Intermediate frames are cosmetic; the last frame always
lands exactly on the target.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Sequence

from generator.base import BaseCache
from generator.state import GeneratedDataset, Point, generate

FrameCallback = Callable[[float], None]
Easing = Callable[[float], float]


def linear(p: float) -> float:
    return p


def ease_out_cubic(p: float) -> float:
    return 1 - (1 - p) ** 3


def ease_out_quart(p: float) -> float:
    return 1 - (1 - p) ** 4


class FrameScheduler(Protocol):
    def now(self) -> float: ...
    def request_frame(self, callback: FrameCallback) -> int: ...
    def cancel_frame(self, handle: int) -> None: ...


class ManualFrameScheduler:
    """
    Deterministic frame source with an explicit clock (milliseconds).

    Callbacks requested during a frame run on the next frame, like
    requestAnimationFrame.
    """

    def __init__(self, frame_ms: float = 16.0, start: float = 0.0):
        self.frame_ms = frame_ms
        self.time = start
        self._ids = itertools.count(1)
        self._pending: dict[int, FrameCallback] = {}

    def now(self) -> float:
        return self.time

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def step(self) -> None:
        """Advance one frame and run everything that was pending."""
        self.time += self.frame_ms
        due, self._pending = self._pending, {}
        for callback in due.values():
            callback(self.time)

    def advance(self, ms: float) -> None:
        end = self.time + ms
        while self.time + self.frame_ms <= end:
            self.step()
        self.time = max(self.time, end)

    def run_until_idle(self, max_frames: int = 10_000) -> None:
        for _ in range(max_frames):
            if not self._pending:
                return
            self.step()


class TweenHandle:
    """Cancel handle for one running tween."""

    def __init__(self, scheduler: FrameScheduler):
        self._scheduler = scheduler
        self._frame: Optional[int] = None
        self.done = False
        self.cancelled = False

    def cancel(self) -> None:
        if self._frame is not None:
            self._scheduler.cancel_frame(self._frame)
            self._frame = None
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not (self.done or self.cancelled)


def start_tween(
    start: float,
    end: float,
    duration_ms: float,
    on_frame: Callable[[float], None],
    scheduler: FrameScheduler,
    easing: Easing = ease_out_quart,
    on_complete: Optional[Callable[[], None]] = None,
) -> TweenHandle:
    """
    Tween a scalar from start to end over duration_ms.

    on_frame receives the eased value on every frame; the final call is
    exactly `end`.
    """
    handle = TweenHandle(scheduler)
    t0 = scheduler.now()

    def frame(now: float) -> None:
        handle._frame = None
        if handle.cancelled:
            return
        p = 1.0 if duration_ms <= 0 else min((now - t0) / duration_ms, 1.0)
        if p >= 1.0:
            handle.done = True
            on_frame(end)
            if on_complete is not None:
                on_complete()
            return
        on_frame(start + (end - start) * easing(p))
        handle._frame = scheduler.request_frame(frame)

    handle._frame = scheduler.request_frame(frame)
    return handle


@dataclass
class Animator:
    """
    Single-slot tween runner.

    animate() cancels whatever is in flight and starts from the current
    value, so rapid slider input restarts the transition instead of
    queueing it. Changes within snap_threshold are applied immediately.
    """
    scheduler: FrameScheduler
    on_value: Callable[[float], None]
    duration_ms: float = 100.0
    easing: Easing = ease_out_quart
    snap_threshold: float = 0.0
    value: Optional[float] = None
    _handle: Optional[TweenHandle] = field(default=None, repr=False)

    def _set(self, v: float) -> None:
        self.value = v
        self.on_value(v)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.active

    def animate(self, target: float) -> None:
        self.cancel()
        if self.value is None or abs(target - self.value) <= self.snap_threshold:
            self._set(target)
            return
        self._handle = start_tween(
            self.value, target, self.duration_ms, self._set,
            self.scheduler, self.easing,
        )

    def jump(self, target: float) -> None:
        """Set the value with no transition (e.g. provenance replay)."""
        self.cancel()
        self._set(target)


def interpolate_points(
    frm: Sequence[Point],
    to: Sequence[Point],
    t: float,
) -> tuple[Point, ...]:
    """
    Per-point linear interpolation at fraction t.

    Points present only in `to` appear at their target position; points
    present only in `frm` are dropped.
    """
    out = []
    for i, target in enumerate(to):
        if i < len(frm):
            src = frm[i]
            out.append(Point(src.x + (target.x - src.x) * t, src.y + (target.y - src.y) * t))
        else:
            out.append(target)
    return tuple(out)


class PointTransition:
    """
    Tween strategy (a): move points from their current positions to a newly
    generated target set, then snap to the target exactly.
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        on_points: Callable[[tuple[Point, ...]], None],
        duration_ms: float = 400.0,
        easing: Easing = ease_out_cubic,
    ):
        self.scheduler = scheduler
        self.on_points = on_points
        self.duration_ms = duration_ms
        self.easing = easing
        self.points: tuple[Point, ...] = ()
        self._handle: Optional[TweenHandle] = None

    def _show(self, points: tuple[Point, ...]) -> None:
        self.points = points
        self.on_points(points)

    def transition_to(self, target: Sequence[Point]) -> None:
        if self._handle is not None:
            self._handle.cancel()
        target = tuple(target)
        frm = self.points
        if not frm:
            self._show(target)
            return

        def frame(p: float) -> None:
            if p >= 1.0:
                self._show(target)
            else:
                self._show(interpolate_points(frm, target, self.easing(p)))

        self._handle = start_tween(0.0, 1.0, self.duration_ms, frame, self.scheduler, linear)


class CorrelationTransition:
    """
    Tween strategy (b): tween the displayed r and regenerate the full point
    set from the cached base at every frame. The sample shape stays coherent
    throughout and the final frame is generate(target) exactly.
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        on_dataset: Callable[[GeneratedDataset], None],
        sample_size: int,
        seed: int,
        cache: Optional[BaseCache] = None,
        duration_ms: float = 100.0,
        snap_threshold: float = 0.01,
        **generate_kwargs,
    ):
        self.sample_size = sample_size
        self.seed = seed
        self.cache = cache if cache is not None else BaseCache()
        self.on_dataset = on_dataset
        self.generate_kwargs = generate_kwargs
        self.dataset: Optional[GeneratedDataset] = None
        self.animator = Animator(
            scheduler=scheduler,
            on_value=self._regenerate,
            duration_ms=duration_ms,
            easing=ease_out_quart,
            snap_threshold=snap_threshold,
        )

    @property
    def displayed_correlation(self) -> Optional[float]:
        return self.animator.value

    def _regenerate(self, r: float) -> None:
        dataset = generate(
            r, self.sample_size, self.seed, cache=self.cache, **self.generate_kwargs
        )
        self.dataset = dataset
        if dataset is not None:
            self.on_dataset(dataset)

    def transition_to(self, r: float) -> None:
        self.animator.animate(r)

    def jump_to(self, r: float) -> None:
        self.animator.jump(r)
