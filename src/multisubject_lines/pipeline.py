# src/multisubject_lines/pipeline.py
"""
Main routine: one regression line (and points) per subject, slope statistics,
optional group-average overlay.
"""
from __future__ import annotations

import sys
from typing import Any, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from .config import LinePlotOptions
from .core import (
    PAPER_FIGSIZE_SQUARE,
    FitResult,
    InsufficientSubjects,
    LinePlotHandles,
    LinePlotResult,
    SubjectShapeMismatch,
    fit_ols,
    is_skipped,
)
from .normalize import normalize_inputs
from .plotting import (
    draw_group_bins,
    draw_group_line,
    draw_subject_line,
    draw_subject_points,
    group_colors,
    marker_for,
    subject_colors,
)
from .preprocessing import bin_subject, center_series
from .stats import compute_slope_stats, format_summary, group_average_line, group_bin_means


def _resolve_options(options: Optional[LinePlotOptions], overrides: dict) -> LinePlotOptions:
    if options is None:
        return LinePlotOptions.from_mapping(overrides)
    if overrides:
        return options.with_overrides(overrides)
    return options


def line_plot_multisubject(
    x: Any,
    y: Any = None,
    options: Optional[LinePlotOptions] = None,
    *,
    ax: Any = None,
    **overrides: Any,
) -> LinePlotResult:
    """
    Scatter/regression plot of multi-subject data, one line per subject in
    its own color.

    Args:
        x, y: one sequence per subject (grouped), or flat vectors with
            `subject_ids` set in the options. A Grouped/FlatWithIds input may
            be passed as `x` alone.
        options: LinePlotOptions. Keyword overrides (bin_count=4,
            center=True, ...) are applied on top.
        ax: matplotlib Axes to draw on. A new square figure is created when None.

    Returns:
        LinePlotResult with the valid handles, the per-subject x/y after
        centering/binning, per-subject fits and bins, and the slope statistics.

    Raises:
        InvalidInputKind, ShapeMismatch: malformed inputs.
        SubjectShapeMismatch: a subject's x and y disagree after preprocessing.
        InsufficientSubjects: fewer than 2 subjects with data.
    """
    opts = _resolve_options(options, overrides)
    data = normalize_inputs(x, y, subject_ids=opts.subject_ids)
    n = data.n_subjects

    xs: list[np.ndarray] = [v.copy() for v in data.x]
    ys: list[np.ndarray] = [v.copy() for v in data.y]
    fits: dict[Any, FitResult] = {}
    bins: dict = {}
    included: list[int] = []

    # preprocess and fit every subject before anything is drawn
    for i in range(n):
        if is_skipped(xs[i], ys[i]):
            continue
        if xs[i].size != ys[i].size:
            raise SubjectShapeMismatch(
                f"Subject {data.labels[i]} has unequal elements in X and Y. Check data."
            )
        if opts.center:
            xs[i] = center_series(xs[i])
            ys[i] = center_series(ys[i])
        if opts.bin_count > 0:
            binned = bin_subject(xs[i], ys[i], opts.bin_count)
            bins[data.labels[i]] = binned
            xs[i] = binned.x_mean
            ys[i] = binned.y_mean
        if xs[i].size != ys[i].size:
            raise SubjectShapeMismatch(
                f"Subject {data.labels[i]} has unequal elements in X and Y after preprocessing."
            )
        if is_skipped(xs[i], ys[i]):
            bins.pop(data.labels[i], None)
            continue
        fits[data.labels[i]] = fit_ols(xs[i], ys[i])
        included.append(i)

    if len(included) < 2:
        raise InsufficientSubjects(
            f"At least 2 subjects with data are required, got {len(included)} of {n}."
        )

    stats = compute_slope_stats(fits, xs, ys)

    if ax is None:
        _fig, ax = plt.subplots(figsize=PAPER_FIGSIZE_SQUARE)

    colors = subject_colors(opts.colors, n)
    line_handles: list[Optional[Any]] = [None] * n
    point_handles: list[Optional[Any]] = [None] * n

    for i in included:
        fit = fits[data.labels[i]]
        if opts.show_lines:
            line_handles[i] = draw_subject_line(ax, fit, colors[i])
        if opts.show_points:
            point_handles[i] = draw_subject_points(
                ax, xs[i], ys[i], colors[i], marker_for(opts.marker_symbols, i)
            )

    handles = LinePlotHandles(
        point_handles=[h for h in point_handles if h is not None],
        line_handles=[h for h in line_handles if h is not None],
    )

    overlay = None
    if opts.group_overlay:
        gline, gfill = group_colors(opts.group_colors, colors)
        if opts.bin_count > 0:
            overlay = group_bin_means(bins)
            handles.group_line, handles.group_error_bars = draw_group_bins(ax, overlay, gline, gfill)
        else:
            overlay = group_average_line(fits, stats.coefficients)
            handles.group_line = draw_group_line(ax, overlay)

    print(format_summary(stats), file=sys.stderr)

    return LinePlotResult(
        handles=handles,
        x=xs,
        y=ys,
        labels=list(data.labels),
        fits=fits,
        bins=bins,
        slope_stats=stats,
        group_overlay=overlay,
    )


def slope_table(result: LinePlotResult) -> Sequence[dict]:
    """Per-subject fit rows (label, intercept, slope, r2, n) for export."""
    return [
        {
            "subject": label,
            "intercept": fit.intercept,
            "slope": fit.slope,
            "r2": fit.r2,
            "n": fit.n,
        }
        for label, fit in result.fits.items()
    ]
