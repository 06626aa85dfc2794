# src/multisubject_lines/plotting.py
"""
Colors, markers and drawing primitives for the multi-subject line plot.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np
from matplotlib.colors import to_rgb

from .core import FitResult, GroupOverlay


# Default subject palette endpoints (salmon -> olive)
DEFAULT_COLOR_START = (1.0, 0.5, 0.4)
DEFAULT_COLOR_END = (0.8, 0.8, 0.4)

# Group overlay colors for the unbinned average line
GROUP_LINE_COLOR = "k"

SUBJECT_LINE_WIDTH = 0.8
SUBJECT_MARKER_SIZE = 3
GROUP_TREND_LINE_WIDTH = 2.5
GROUP_ERRORBAR_LINE_WIDTH = 1.5
GROUP_MARKER_SIZE = 5
GROUP_REF_LINE_WIDTH = 3.0
SEPARATED_LINE_FRACTION = 0.7


def custom_colors(start: Any, end: Any, n: int) -> list[tuple[float, float, float]]:
    """n RGB colors linearly interpolated from start to end (inclusive)."""
    n = int(n)
    if n <= 0:
        return []
    a = np.asarray(to_rgb(start), dtype=float)
    b = np.asarray(to_rgb(end), dtype=float)
    if n == 1:
        return [tuple(float(v) for v in a)]
    w = np.linspace(0.0, 1.0, n)[:, None]
    rgb = (1.0 - w) * a + w * b
    return [tuple(float(v) for v in row) for row in rgb]


def subject_colors(colors: Optional[Sequence[Any]], n: int) -> list:
    """Per-subject colors, tiled so that there are at least n entries."""
    if colors is None:
        return custom_colors(DEFAULT_COLOR_START, DEFAULT_COLOR_END, n)
    colors = list(colors)
    if len(colors) >= n:
        return colors
    reps = -(-n // len(colors))
    return (colors * reps)[: max(n, len(colors))]


def group_colors(gcolors: Optional[Sequence[Any]], colors: Sequence[Any]) -> tuple:
    """(line color, fill color) for the group overlay."""
    if gcolors is None:
        gcolors = list(colors[:2]) if len(colors) else [GROUP_LINE_COLOR]
    gcolors = list(gcolors)
    if len(gcolors) < 2:
        gcolors.append(gcolors[0])
    return gcolors[0], gcolors[1]


def marker_for(markers: Sequence[str], position: int) -> str:
    return markers[position % len(markers)]


# -----------------------------------------------------------------------------
# Per-subject geometry
# -----------------------------------------------------------------------------


def draw_subject_line(ax: Any, fit: FitResult, color: Any) -> Any:
    """Regression line across the subject's x range."""
    xx = np.array([fit.x_min, fit.x_max], dtype=float)
    (h,) = ax.plot(xx, fit.predict(xx), color=color, linewidth=SUBJECT_LINE_WIDTH)
    return h


def draw_subject_points(ax: Any, x: np.ndarray, y: np.ndarray, color: Any, marker: str) -> Any:
    (h,) = ax.plot(
        np.asarray(x, dtype=float),
        np.asarray(y, dtype=float),
        linestyle="none",
        marker=marker,
        markersize=SUBJECT_MARKER_SIZE,
        markerfacecolor=color,
        markeredgecolor=color,
        color=color,
    )
    return h


# -----------------------------------------------------------------------------
# Group overlay geometry
# -----------------------------------------------------------------------------


def separated_segments(
    x: np.ndarray,
    y: np.ndarray,
    fraction: float = SEPARATED_LINE_FRACTION,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Segments joining consecutive points, each shortened symmetrically to
    `fraction` of its length, separated by NaN so one Line2D draws them all.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.size < 2:
        return x.copy(), y.copy()
    pad = (1.0 - float(fraction)) / 2.0
    xs: list[float] = []
    ys: list[float] = []
    for j in range(x.size - 1):
        dx = x[j + 1] - x[j]
        dy = y[j + 1] - y[j]
        xs += [x[j] + pad * dx, x[j + 1] - pad * dx, np.nan]
        ys += [y[j] + pad * dy, y[j + 1] - pad * dy, np.nan]
    return np.asarray(xs[:-1]), np.asarray(ys[:-1])


def draw_group_bins(ax: Any, overlay: GroupOverlay, line_color: Any, fill_color: Any) -> tuple[Any, list]:
    """Separated trend line plus horizontal and vertical standard-error bars."""
    sx, sy = separated_segments(overlay.x, overlay.y)
    (trend,) = ax.plot(sx, sy, color=line_color, linewidth=GROUP_TREND_LINE_WIDTH, zorder=4)

    style = dict(
        fmt="o",
        color=line_color,
        ecolor=line_color,
        elinewidth=GROUP_ERRORBAR_LINE_WIDTH,
        linewidth=GROUP_ERRORBAR_LINE_WIDTH,
        markersize=GROUP_MARKER_SIZE,
        markerfacecolor=fill_color,
        markeredgecolor=line_color,
        zorder=5,
    )
    h_err = ax.errorbar(overlay.x, overlay.y, xerr=overlay.x_sem, **style)
    v_err = ax.errorbar(overlay.x, overlay.y, yerr=overlay.y_sem, **style)
    return trend, [h_err, v_err]


def draw_group_line(ax: Any, overlay: GroupOverlay) -> Any:
    (h,) = ax.plot(
        overlay.x,
        overlay.y,
        color=GROUP_LINE_COLOR,
        linewidth=GROUP_REF_LINE_WIDTH,
        zorder=4,
    )
    return h
