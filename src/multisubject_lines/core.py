# src/multisubject_lines/core.py
"""
Core data structures, error types and numeric helpers.
"""
from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np
import pandas as pd
from matplotlib import font_manager as fm


class MultiSubjectPlotError(ValueError):
    """Base class for input and statistics errors raised by this package."""


class InvalidInputKind(MultiSubjectPlotError):
    """Raised when X/Y are not in the grouped/flat form the call requires."""


class ShapeMismatch(MultiSubjectPlotError):
    """Raised when X and Y (or subject ids) disagree in length."""


class SubjectShapeMismatch(ShapeMismatch):
    """Raised when one subject's X and Y differ in length after preprocessing."""


class InsufficientSubjects(MultiSubjectPlotError):
    """Raised when fewer than 2 usable subjects are left for the slope t-test."""


@dataclass(frozen=True)
class FitResult:
    intercept: float
    slope: float
    r2: float
    n: int
    x_min: float
    x_max: float

    def predict(self, x: Any) -> np.ndarray:
        return self.intercept + self.slope * np.asarray(x, dtype=float)


@dataclass(frozen=True)
class BinnedSeries:
    """Per-bin aggregates of one subject (one entry per bin, in bin order)."""

    x_mean: np.ndarray
    y_mean: np.ndarray
    x_sem: np.ndarray
    y_sem: np.ndarray
    counts: np.ndarray
    edges: np.ndarray

    @property
    def n_bins(self) -> int:
        return int(self.x_mean.size)


@dataclass
class SlopeStats:
    coefficients: pd.DataFrame
    t: float
    df: int
    p: float
    r: float
    wasnan: np.ndarray
    n_missing: int

    @property
    def b(self) -> np.ndarray:
        """Coefficient table as an (n_subjects, 2) array: intercept, slope."""
        return self.coefficients[["intercept", "slope"]].to_numpy(dtype=float)


@dataclass
class GroupOverlay:
    mode: str  # "binned" or "line"
    x: np.ndarray
    y: np.ndarray
    x_sem: Optional[np.ndarray] = None
    y_sem: Optional[np.ndarray] = None
    intercept: Optional[float] = None
    slope: Optional[float] = None
    x_extent: Optional[tuple[float, float]] = None


@dataclass
class LinePlotHandles:
    point_handles: list = field(default_factory=list)
    line_handles: list = field(default_factory=list)
    group_line: Any = None
    group_error_bars: list = field(default_factory=list)


@dataclass
class LinePlotResult:
    handles: LinePlotHandles
    x: list[np.ndarray]
    y: list[np.ndarray]
    labels: list
    fits: dict
    bins: dict
    slope_stats: SlopeStats
    group_overlay: Optional[GroupOverlay] = None


def apply_paper_style() -> dict:
    """
    Return matplotlib rcParams dict for paper-grade figures.

    Font priority: Arial > Helvetica > Liberation Sans > DejaVu Sans
    Font size: 6-8 pt
    Line width: 0.6-0.8 pt
    DPI: 600

    Usage:
        with plt.rc_context(apply_paper_style()):
            fig, ax = plt.subplots(figsize=PAPER_FIGSIZE_SQUARE)
            line_plot_multisubject(X, Y, ax=ax)
            paper_savefig(fig, "out.png")
    """
    available = {f.name for f in fm.fontManager.ttflist}
    font_priority = ["Arial", "Helvetica", "Liberation Sans", "DejaVu Sans"]
    chosen = next((f for f in font_priority if f in available), "DejaVu Sans")

    return {
        # ===== FONT =====
        "font.family": "sans-serif",
        "font.sans-serif": [chosen] + [f for f in font_priority if f != chosen],
        "pdf.fonttype": 42,
        "ps.fonttype": 42,
        "font.size": 7,
        "axes.titlesize": 8,
        "axes.labelsize": 7,
        "xtick.labelsize": 6,
        "ytick.labelsize": 6,
        "legend.fontsize": 6,

        # ===== LINES & MARKERS =====
        "lines.linewidth": 0.7,
        "lines.markersize": 3,
        "lines.markeredgewidth": 0.3,

        # ===== AXES & TICKS =====
        "axes.linewidth": 0.6,
        "axes.edgecolor": "0.3",
        "axes.labelcolor": "0.15",
        "axes.facecolor": "white",
        "axes.axisbelow": True,
        "axes.grid": False,
        "xtick.major.width": 0.5,
        "ytick.major.width": 0.5,
        "xtick.major.size": 3,
        "ytick.major.size": 3,
        "xtick.color": "0.3",
        "ytick.color": "0.3",
        "xtick.direction": "out",
        "ytick.direction": "out",

        # ===== FIGURE / SAVEFIG =====
        "figure.facecolor": "white",
        "figure.dpi": 100,
        "savefig.dpi": 600,
        "savefig.facecolor": "white",
        "savefig.bbox": "tight",
        "savefig.pad_inches": 0.02,
        "savefig.format": "png",
    }


PAPER_FIGSIZE_SQUARE = (3.0, 3.0)


def paper_savefig(fig, path, **kwargs):
    """
    Save figure with paper-grade settings (PNG, 600 dpi, tight bbox).
    """
    defaults = {
        "dpi": 600,
        "bbox_inches": "tight",
        "pad_inches": 0.02,
        "facecolor": "white",
        "edgecolor": "white",
    }
    defaults.update(kwargs)
    fig.savefig(path, **defaults)


def _nan_mean(a: np.ndarray, axis: Optional[int] = None) -> np.ndarray:
    """nanmean without the empty-slice RuntimeWarning; all-NaN slices give NaN."""
    a = np.asarray(a, dtype=float)
    n = np.sum(np.isfinite(a), axis=axis)
    s = np.nansum(np.where(np.isfinite(a), a, np.nan), axis=axis)
    with np.errstate(invalid="ignore", divide="ignore"):
        out = np.where(n > 0, s / np.maximum(n, 1), np.nan)
    return out if np.ndim(out) else float(out)


def _nan_sem(a: np.ndarray, axis: Optional[int] = None) -> np.ndarray:
    """
    Standard error ignoring NaN: sample std (ddof=1) / sqrt(non-missing count).

    One non-missing value gives 0.0, none gives NaN.
    """
    a = np.asarray(a, dtype=float)
    finite = np.isfinite(a)
    n = np.sum(finite, axis=axis)
    mean = _nan_mean(a, axis=axis)
    mean_b = np.expand_dims(mean, axis) if (axis is not None and np.ndim(mean)) else mean
    sq = np.where(finite, (a - mean_b) ** 2, 0.0)
    ss = np.sum(sq, axis=axis)
    with np.errstate(invalid="ignore", divide="ignore"):
        sd = np.sqrt(ss / np.maximum(n - 1, 1))
        out = np.where(n > 1, sd / np.sqrt(np.maximum(n, 1)), np.where(n == 1, 0.0, np.nan))
    return out if np.ndim(out) else float(out)


def _percentile(values: np.ndarray, q: Any) -> Any:
    """Percentile of the finite values (linear interpolation, NaN ignored)."""
    v = np.asarray(values, dtype=float)
    v = v[np.isfinite(v)]
    if v.size == 0:
        return np.full(np.shape(q), np.nan) if np.ndim(q) else np.nan
    return np.percentile(v, q)


def is_skipped(x: np.ndarray, y: np.ndarray) -> bool:
    """
    True when a subject is empty, entirely missing in either coordinate, or
    has no pair with both values present.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.size == 0:
        return True
    if np.all(np.isnan(x)) or np.all(np.isnan(y)):
        return True
    return x.size == y.size and not np.any(np.isfinite(x) & np.isfinite(y))


def fit_ols(x: np.ndarray, y: np.ndarray) -> FitResult:
    """
    Ordinary least squares fit y = b0 + b1*x over the finite (x, y) pairs.

    When x has no spread (all values identical, or a single finite pair) the
    slope is reported as 0.0 and the intercept as mean(y). x_min / x_max span
    all finite x values of the subject, paired or not.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    ok = np.isfinite(x) & np.isfinite(y)
    xf = x[ok]
    yf = y[ok]
    if xf.size == 0:
        raise ValueError("fit_ols needs at least one finite (x, y) pair")

    if xf.size < 2 or float(np.ptp(xf)) == 0.0:
        warnings.warn(
            f"x has no spread (n={xf.size}); reporting slope=0 and intercept=mean(y).",
            RuntimeWarning,
            stacklevel=2,
        )
        b1 = 0.0
        b0 = float(np.mean(yf))
    else:
        b1, b0 = (float(v) for v in np.polyfit(xf, yf, 1))

    yhat = b0 + b1 * xf
    ss_res = float(np.sum((yf - yhat) ** 2))
    ss_tot = float(np.sum((yf - float(np.mean(yf))) ** 2))
    r2 = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0
    # line extent covers every finite x, including those whose y is missing
    x_all = x[np.isfinite(x)]
    return FitResult(
        intercept=b0,
        slope=b1,
        r2=float(r2),
        n=int(xf.size),
        x_min=float(np.min(x_all)),
        x_max=float(np.max(x_all)),
    )
