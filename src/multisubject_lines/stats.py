# src/multisubject_lines/stats.py
"""
Cross-subject statistics: slope t-test, pooled correlation, group overlay geometry.
"""
from __future__ import annotations

import warnings
from typing import Mapping, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats

from .core import (
    BinnedSeries,
    FitResult,
    GroupOverlay,
    InsufficientSubjects,
    SlopeStats,
    _nan_mean,
    _nan_sem,
    _percentile,
)

# Relative spread below which the slopes are treated as having no variance.
ZERO_VARIANCE_RTOL = 1e-12


def coefficient_table(fits: Mapping[object, FitResult]) -> pd.DataFrame:
    """Rows in processing order, indexed by subject label."""
    df = pd.DataFrame(
        {
            "intercept": [f.intercept for f in fits.values()],
            "slope": [f.slope for f in fits.values()],
        },
        index=pd.Index(list(fits.keys()), name="subject"),
    )
    return df


def slope_ttest(slopes: Sequence[float]) -> Tuple[float, int, float]:
    """
    Two-tailed one-sample t-test of the slopes against 0.

    Returns (t, df, p). When the slopes have no spread the test statistic is
    not finite: t is +/-inf with p = 0.0 for a non-zero mean, and t = 0.0 with
    p = 1.0 when every slope is 0.
    """
    b = np.asarray(slopes, dtype=float)
    b = b[np.isfinite(b)]
    n = int(b.size)
    if n < 2:
        raise InsufficientSubjects(
            f"The slope t-test needs at least 2 subjects with data, got {n}."
        )
    df = n - 1
    mean = float(np.mean(b))
    sd = float(np.std(b, ddof=1))

    if sd == 0.0 or sd <= ZERO_VARIANCE_RTOL * abs(mean):
        warnings.warn(
            f"All {n} slopes are identical ({mean:.6g}); the t statistic is not finite.",
            RuntimeWarning,
            stacklevel=2,
        )
        if mean == 0.0:
            return 0.0, df, 1.0
        return float(np.copysign(np.inf, mean)), df, 0.0

    res = scipy_stats.ttest_1samp(b, 0.0)
    return float(res.statistic), df, float(res.pvalue)


def pooled_correlation(
    x_list: Sequence[np.ndarray],
    y_list: Sequence[np.ndarray],
) -> Tuple[float, np.ndarray]:
    """
    Pearson r over all subjects' concatenated (x, y), dropping pairs where
    either value is missing.

    Returns (r, wasnan) where wasnan flags the removed rows of the
    concatenation. r is NaN with fewer than 2 complete pairs or a constant
    coordinate.
    """
    xc = np.concatenate([np.asarray(v, dtype=float).ravel() for v in x_list]) if len(x_list) else np.empty(0)
    yc = np.concatenate([np.asarray(v, dtype=float).ravel() for v in y_list]) if len(y_list) else np.empty(0)
    wasnan = ~(np.isfinite(xc) & np.isfinite(yc))
    xk = xc[~wasnan]
    yk = yc[~wasnan]
    if xk.size < 2 or np.ptp(xk) == 0 or np.ptp(yk) == 0:
        return float("nan"), wasnan
    r = scipy_stats.pearsonr(xk, yk)[0]
    return float(r), wasnan


def compute_slope_stats(
    fits: Mapping[object, FitResult],
    x_list: Sequence[np.ndarray],
    y_list: Sequence[np.ndarray],
) -> SlopeStats:
    coefs = coefficient_table(fits)
    t, df, p = slope_ttest(coefs["slope"].to_numpy(dtype=float))
    r, wasnan = pooled_correlation(x_list, y_list)
    return SlopeStats(
        coefficients=coefs,
        t=t,
        df=df,
        p=p,
        r=r,
        wasnan=wasnan,
        n_missing=int(np.sum(wasnan)),
    )


def format_summary(stats: SlopeStats) -> str:
    return "r = %3.2f, t(%3.0f) = %3.2f, p = %3.6f, num. missing: %3.0f" % (
        stats.r,
        stats.df,
        stats.t,
        stats.p,
        stats.n_missing,
    )


# -----------------------------------------------------------------------------
# Group overlay
# -----------------------------------------------------------------------------


def group_bin_means(bins: Mapping[object, BinnedSeries]) -> GroupOverlay:
    """
    Cross-subject mean and standard error per bin.

    Rows are subjects, columns are bins; NaN bins are ignored per column.
    """
    if not bins:
        raise InsufficientSubjects("No binned subjects to average.")
    xx = np.vstack([b.x_mean for b in bins.values()])
    yy = np.vstack([b.y_mean for b in bins.values()])
    return GroupOverlay(
        mode="binned",
        x=np.asarray(_nan_mean(xx, axis=0), dtype=float),
        y=np.asarray(_nan_mean(yy, axis=0), dtype=float),
        x_sem=np.asarray(_nan_sem(xx, axis=0), dtype=float),
        y_sem=np.asarray(_nan_sem(yy, axis=0), dtype=float),
    )


def average_coefficients(coefficients: pd.DataFrame) -> Tuple[float, float]:
    avg = coefficients[["intercept", "slope"]].mean(axis=0)
    return float(avg["intercept"]), float(avg["slope"])


def robust_x_extent(
    fits: Mapping[object, FitResult],
    p_low: float = 5.0,
    p_high: float = 95.0,
) -> Tuple[float, float]:
    """
    (p_low percentile of per-subject min x, p_high percentile of per-subject max x).
    Narrower than the full data range when one subject spans far beyond the rest.
    """
    mins = np.array([f.x_min for f in fits.values()], dtype=float)
    maxs = np.array([f.x_max for f in fits.values()], dtype=float)
    return float(_percentile(mins, p_low)), float(_percentile(maxs, p_high))


def group_average_line(fits: Mapping[object, FitResult], coefficients: pd.DataFrame) -> GroupOverlay:
    b0, b1 = average_coefficients(coefficients)
    lo, hi = robust_x_extent(fits)
    x = np.array([lo, hi], dtype=float)
    return GroupOverlay(
        mode="line",
        x=x,
        y=b0 + b1 * x,
        intercept=b0,
        slope=b1,
        x_extent=(lo, hi),
    )
