"""
Scatterplot renderer — dataset → SVG, and SVG → PNG via headless Chromium.

Renders a Jinja2 template with the generated points mapped into screen
space, then (optionally) captures a screenshot using Playwright. The
generator never depends on this module; it only has to produce data a
renderer like this one can consume.
"""

from __future__ import annotations

import asyncio
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader
from PIL import Image

from config import settings
from generator.state import GeneratedDataset, Point
from generator.stats import least_squares

# Jinja2 environment pointing at our templates directory
_TEMPLATE_DIR = Path(__file__).parent / "templates"
_jinja_env = Environment(loader=FileSystemLoader(str(_TEMPLATE_DIR)))

_EPS = 1e-9


@dataclass
class PlotStyle:
    """Screen geometry and colors of one scatterplot."""
    width: int = settings.CANVAS_WIDTH
    height: int = settings.CANVAS_HEIGHT
    left_margin: int = 60
    right_margin: int = 36
    top_margin: int = 36
    bottom_margin: int = 36
    point_color: str = "#228be6"
    user_color: str = "#f76707"
    point_radius: float = 3
    background: str = "white"
    axis_mode: str = settings.AXIS_MODE  # "fixed" | "tight"
    domain_pad_frac: float = settings.DOMAIN_PAD_FRAC
    show_slope_line: bool = False
    title: Optional[str] = None

    @property
    def plot_width(self) -> int:
        return max(1, self.width - self.left_margin - self.right_margin)

    @property
    def plot_height(self) -> int:
        return max(1, self.height - self.top_margin - self.bottom_margin)


@dataclass(frozen=True)
class AxisDomain:
    x_min: float
    x_max: float
    y_min: float
    y_max: float

    def contains(self, p: Point) -> bool:
        return self.x_min <= p.x <= self.x_max and self.y_min <= p.y <= self.y_max


def axis_domain(
    points: Sequence[Point],
    x_range: tuple[float, float] = (0.0, 10.0),
    y_range: tuple[float, float] = (0.0, 10.0),
    axis_mode: str = "fixed",
    pad_frac: float = settings.DOMAIN_PAD_FRAC,
) -> AxisDomain:
    """
    Data-space extent of the axes.

    'fixed' expands the configured ranges by pad_frac once, so plots with
    different r stay comparable. 'tight' fits the data extent plus padding.
    """
    if axis_mode == "tight" and points:
        xs = [p.x for p in points]
        ys = [p.y for p in points]
        x_span = max(_EPS, max(xs) - min(xs))
        y_span = max(_EPS, max(ys) - min(ys))
        return AxisDomain(
            min(xs) - x_span * pad_frac,
            max(xs) + x_span * pad_frac,
            min(ys) - y_span * pad_frac,
            max(ys) + y_span * pad_frac,
        )

    x_mid = 0.5 * (x_range[0] + x_range[1])
    y_mid = 0.5 * (y_range[0] + y_range[1])
    x_half = 0.5 * (x_range[1] - x_range[0]) * (1 + pad_frac * 2)
    y_half = 0.5 * (y_range[1] - y_range[0]) * (1 + pad_frac * 2)
    return AxisDomain(x_mid - x_half, x_mid + x_half, y_mid - y_half, y_mid + y_half)


def _screen(domain: AxisDomain, style: PlotStyle):
    def sx(x: float) -> float:
        return (x - domain.x_min) / max(_EPS, domain.x_max - domain.x_min) * style.plot_width + style.left_margin

    def sy(y: float) -> float:
        return style.height - (
            (y - domain.y_min) / max(_EPS, domain.y_max - domain.y_min) * style.plot_height + style.bottom_margin
        )

    return sx, sy


def render_svg(
    dataset: GeneratedDataset,
    style: Optional[PlotStyle] = None,
    user_points: Sequence[Point] = (),
) -> str:
    """Render a dataset (plus optional user-placed points) as an SVG string."""
    style = style or PlotStyle()
    domain = axis_domain(
        dataset.points, dataset.x_range, dataset.y_range,
        style.axis_mode, style.domain_pad_frac,
    )
    sx, sy = _screen(domain, style)

    slope_line = None
    if style.show_slope_line:
        line = least_squares(dataset.points)
        if line is not None:
            slope_line = (
                sx(domain.x_min), sy(line.predict(domain.x_min)),
                sx(domain.x_max), sy(line.predict(domain.x_max)),
            )

    clip_id = f"clip-{abs(((dataset.seed ^ dataset.sample_size) + style.width + style.height) % 1_000_000)}"
    template = _jinja_env.get_template("scatterplot.svg.j2")
    return template.render(
        width=style.width,
        height=style.height,
        left=style.left_margin,
        right=style.right_margin,
        top=style.top_margin,
        bottom=style.bottom_margin,
        plot_width=style.plot_width,
        plot_height=style.plot_height,
        background=style.background,
        clip_id=clip_id,
        grid_ticks=(0.25, 0.5, 0.75),
        slope_line=slope_line,
        circles=[(sx(p.x), sy(p.y)) for p in dataset.points],
        user_circles=[(sx(p.x), sy(p.y)) for p in user_points],
        point_radius=style.point_radius,
        point_color=style.point_color,
        user_color=style.user_color,
        title=style.title,
    )


def _build_html(svg: str, style: PlotStyle) -> str:
    template = _jinja_env.get_template("stimulus.html.j2")
    return template.render(svg=svg, background=style.background)


async def _render_async(html: str, width: int, height: int) -> Image.Image:
    """Use Playwright to screenshot rendered HTML."""
    from playwright.async_api import async_playwright

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True)
        page = await browser.new_page(viewport={"width": width, "height": height})
        await page.set_content(html, wait_until="load")
        screenshot_bytes = await page.screenshot(type="png")
        await browser.close()

    return Image.open(io.BytesIO(screenshot_bytes)).convert("RGB")


async def render_image_async(
    dataset: GeneratedDataset,
    style: Optional[PlotStyle] = None,
) -> Image.Image:
    """
    Render a dataset to a PIL Image (async version).

    Pipeline: GeneratedDataset → Jinja2 SVG/HTML → Playwright screenshot → PIL.Image
    """
    style = style or PlotStyle()
    html = _build_html(render_svg(dataset, style), style)
    return await _render_async(html, style.width, style.height)


def render_image(
    dataset: GeneratedDataset,
    style: Optional[PlotStyle] = None,
) -> Image.Image:
    """
    Render a dataset to a PIL Image (sync wrapper).

    Handles the asyncio event loop for callers that aren't async.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        # already inside an event loop
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            future = pool.submit(asyncio.run, render_image_async(dataset, style))
            return future.result()
    else:
        return asyncio.run(render_image_async(dataset, style))


def render_dataset_to_file(
    dataset: GeneratedDataset,
    path: Optional[str | Path] = None,
    style: Optional[PlotStyle] = None,
) -> Path:
    """
    Save a dataset as SVG (.svg suffix) or PNG (anything else).

    Defaults to OUTPUTS_DIR/r<r>_n<n>_seed<seed>.png. Returns the output path.
    """
    if path is None:
        name = f"r{dataset.correlation:+.3f}_n{dataset.sample_size}_seed{dataset.seed}.png"
        path = settings.OUTPUTS_DIR / name
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.suffix.lower() == ".svg":
        path.write_text(render_svg(dataset, style), encoding="utf-8")
    else:
        img = render_image(dataset, style)
        img.save(str(path))
    print(f"[renderer] Saved {path}")
    return path
