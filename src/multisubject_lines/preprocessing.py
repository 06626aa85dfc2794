# src/multisubject_lines/preprocessing.py
"""
Per-subject preprocessing: within-subject centering and percentile binning.
"""
from __future__ import annotations

import numpy as np

from .core import BinnedSeries, _nan_mean, _nan_sem, _percentile


def center_series(values: np.ndarray) -> np.ndarray:
    """
    Subtract the subject's own mean (ignoring NaN) from every element.
    All-NaN or empty input is returned unchanged.
    """
    v = np.asarray(values, dtype=float)
    m = _nan_mean(v)
    if not np.isfinite(m):
        return v.copy()
    return v - m


def bin_edges(x: np.ndarray, n_bins: int) -> np.ndarray:
    """
    n_bins + 1 percentile boundaries of x at 0, 100/n_bins, ..., 100.
    The last boundary is +inf so the final bin includes the maximum.
    """
    edges = np.asarray(_percentile(x, np.linspace(0.0, 100.0, int(n_bins) + 1)), dtype=float)
    edges[-1] = np.inf
    return edges


def bin_subject(x: np.ndarray, y: np.ndarray, n_bins: int) -> BinnedSeries:
    """
    Collapse one subject's points into n_bins equal-population bins of x.

    Points are sorted by x and assigned to [edge_j, edge_j+1). Each bin gives
    the mean and standard error of x and y (NaN ignored). Bins that receive
    no points have NaN means. Points with missing or infinite x belong to no
    bin.
    """
    n_bins = int(n_bins)
    if n_bins < 1:
        raise ValueError(f"n_bins must be >= 1, got {n_bins}")

    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    order = np.argsort(x, kind="mergesort")
    xs = x[order]
    ys = y[order]

    edges = bin_edges(xs, n_bins)

    x_mean = np.full(n_bins, np.nan)
    y_mean = np.full(n_bins, np.nan)
    x_sem = np.full(n_bins, np.nan)
    y_sem = np.full(n_bins, np.nan)
    counts = np.zeros(n_bins, dtype=int)

    for j in range(n_bins):
        wh = (xs >= edges[j]) & (xs < edges[j + 1])
        counts[j] = int(np.sum(wh))
        if counts[j] == 0:
            continue
        x_mean[j] = _nan_mean(xs[wh])
        y_mean[j] = _nan_mean(ys[wh])
        x_sem[j] = _nan_sem(xs[wh])
        y_sem[j] = _nan_sem(ys[wh])

    return BinnedSeries(
        x_mean=x_mean,
        y_mean=y_mean,
        x_sem=x_sem,
        y_sem=y_sem,
        counts=counts,
        edges=edges,
    )
