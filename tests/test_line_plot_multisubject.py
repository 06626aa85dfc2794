from __future__ import annotations

import io
import sys
import unittest
import warnings
from contextlib import redirect_stderr
from pathlib import Path

import numpy as np

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.colors import to_rgba  # noqa: E402


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from multisubject_lines import (  # noqa: E402
    FlatWithIds,
    InsufficientSubjects,
    InvalidInputKind,
    LinePlotOptions,
    line_plot_multisubject,
)


def _run(*args, **kwargs):
    """Call line_plot_multisubject on a fresh axes, capturing the stderr summary."""
    fig, ax = plt.subplots()
    buf = io.StringIO()
    with redirect_stderr(buf), warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        res = line_plot_multisubject(*args, ax=ax, **kwargs)
    return res, ax, fig, buf.getvalue()


class LinePlotMultisubjectTests(unittest.TestCase):
    def tearDown(self) -> None:
        plt.close("all")

    def test_identical_slopes_three_subjects(self) -> None:
        x = [1.0, 2.0, 3.0, 4.0]
        offsets = [0.0, 0.1, 0.2]
        X = [list(x) for _ in offsets]
        Y = [[v + c for v in x] for c in offsets]
        res, ax, _fig, summary = _run(X, Y)

        st = res.slope_stats
        np.testing.assert_allclose(st.coefficients["slope"], [1.0, 1.0, 1.0], atol=1e-10)
        np.testing.assert_allclose(st.coefficients["intercept"], offsets, atol=1e-10)
        self.assertGreater(st.r, 0.99)
        self.assertEqual(st.t, np.inf)
        self.assertEqual(st.p, 0.0)
        self.assertEqual(st.df, 2)
        self.assertEqual(len(res.handles.line_handles), 3)
        self.assertEqual(len(res.handles.point_handles), 3)
        self.assertTrue(summary.startswith("r = "))
        self.assertIn("t(  2) = inf", summary)

    def test_identical_slopes_warn(self) -> None:
        X = [[1.0, 2.0, 3.0]] * 3
        Y = [[2.0, 3.0, 4.0], [3.0, 4.0, 5.0], [4.0, 5.0, 6.0]]
        _fig, ax = plt.subplots()
        with redirect_stderr(io.StringIO()), self.assertWarns(RuntimeWarning):
            line_plot_multisubject(X, Y, ax=ax)

    def test_empty_subject_is_skipped(self) -> None:
        X = [[1.0, 2.0, 3.0], [], [1.0, 2.0, 3.0]]
        Y = [[1.0, 2.0, 3.5], [], [2.0, 2.5, 3.0]]
        res, ax, _fig, _ = _run(X, Y)
        self.assertEqual(len(res.handles.line_handles), 2)
        self.assertEqual(len(res.handles.point_handles), 2)
        self.assertEqual(res.slope_stats.coefficients.shape, (2, 2))
        self.assertEqual(list(res.slope_stats.coefficients.index), [0, 2])
        self.assertEqual(len(ax.lines), 4)
        # data for the skipped subject is returned untouched
        self.assertEqual(res.x[1].size, 0)

    def test_all_missing_subject_is_skipped(self) -> None:
        X = [[1.0, 2.0], [np.nan, np.nan], [1.0, 2.0], [1.0, 2.0]]
        Y = [[1.0, 2.0], [1.0, 2.0], [np.nan, np.nan], [2.0, 5.0]]
        res, _ax, _fig, summary = _run(X, Y)
        self.assertEqual(list(res.fits.keys()), [0, 3])
        self.assertEqual(res.slope_stats.n_missing, 4)
        self.assertEqual(res.slope_stats.wasnan.size, 8)
        self.assertIn("num. missing:   4", summary)

    def test_subject_without_complete_pair_is_skipped(self) -> None:
        X = [[1.0, np.nan], [1.0, 2.0, 3.0], [1.0, 2.0, 3.0]]
        Y = [[np.nan, 2.0], [1.0, 2.0, 4.0], [3.0, 2.0, 2.0]]
        res, _ax, _fig, _ = _run(X, Y)
        self.assertEqual(list(res.fits.keys()), [1, 2])
        self.assertEqual(len(res.handles.point_handles), 2)

    def test_subject_line_spans_x_with_missing_y(self) -> None:
        X = [[1.0, 2.0, 3.0, 10.0], [1.0, 2.0, 3.0, 4.0], [1.0, 2.0, 3.0, 4.0]]
        Y = [[1.0, 2.0, 3.0, np.nan], [2.0, 1.0, 4.0, 3.0], [0.0, 1.0, 1.0, 3.0]]
        res, _ax, _fig, _ = _run(X, Y)
        np.testing.assert_allclose(res.handles.line_handles[0].get_xdata(), [1.0, 10.0])
        np.testing.assert_allclose(res.handles.line_handles[0].get_ydata(), [1.0, 10.0])

    def test_unknown_override_with_options_rejected(self) -> None:
        X = [[1.0, 2.0, 3.0], [1.0, 2.0, 4.0]]
        Y = [[1.0, 2.0, 2.0], [2.0, 1.0, 0.0]]
        _fig, ax = plt.subplots()
        with self.assertRaises(ValueError):
            line_plot_multisubject(X, Y, LinePlotOptions(center=True), ax=ax, n_bins=3)
        self.assertEqual(len(ax.lines), 0)

    def test_fewer_than_two_subjects_raises(self) -> None:
        _fig, ax = plt.subplots()
        with self.assertRaises(InsufficientSubjects):
            line_plot_multisubject([[1.0, 2.0], []], [[1.0, 2.0], []], ax=ax)
        self.assertEqual(len(ax.lines), 0)

    def test_binned_subject_has_four_points(self) -> None:
        x = np.arange(1.0, 9.0)
        X = [x, x + 0.5]
        Y = [2.0 * x, 3.0 * x]
        res, _ax, _fig, _ = _run(X, Y, bin_count=4)
        np.testing.assert_allclose(res.x[0], [1.5, 3.5, 5.5, 7.5])
        np.testing.assert_allclose(res.y[0], [3.0, 7.0, 11.0, 15.0])
        self.assertEqual(res.bins[0].n_bins, 4)
        np.testing.assert_allclose(res.slope_stats.coefficients["slope"], [2.0, 3.0])
        xdata = res.handles.point_handles[0].get_xdata()
        self.assertEqual(len(xdata), 4)

    def test_centering_zeroes_subject_means(self) -> None:
        X = [[1.0, 2.0, 3.0], [10.0, 12.0, 17.0]]
        Y = [[5.0, 7.0, 6.0], [-1.0, 0.0, 4.0]]
        res, _ax, _fig, _ = _run(X, Y, center=True)
        for xi, yi in zip(res.x, res.y):
            self.assertAlmostEqual(float(np.mean(xi)), 0.0)
            self.assertAlmostEqual(float(np.mean(yi)), 0.0)
        for fit in res.fits.values():
            self.assertAlmostEqual(fit.intercept, 0.0)

    def test_group_average_line_unbinned(self) -> None:
        slopes = [1.0, 1.0, 1.0, 1.0, 5.0]
        X, Y = [], []
        for i, s in enumerate(slopes):
            x = np.linspace(-50.0, 50.0, 6) if i == 4 else np.linspace(0.0, 10.0, 6)
            X.append(x)
            Y.append(s * x)
        res, _ax, _fig, _ = _run(X, Y, group_overlay=True)
        ov = res.group_overlay
        self.assertEqual(ov.mode, "line")
        self.assertAlmostEqual(ov.slope, 1.8)
        self.assertAlmostEqual(ov.intercept, 0.0, places=10)
        lo, hi = ov.x_extent
        self.assertAlmostEqual(lo, float(np.percentile([0, 0, 0, 0, -50], 5)))
        self.assertAlmostEqual(hi, float(np.percentile([10, 10, 10, 10, 50], 95)))
        self.assertGreater(lo, -50.0)
        self.assertLess(hi, 50.0)
        gx = res.handles.group_line.get_xdata()
        np.testing.assert_allclose(gx, [lo, hi])
        np.testing.assert_allclose(res.handles.group_line.get_ydata(), [1.8 * lo, 1.8 * hi])
        self.assertEqual(res.handles.group_error_bars, [])

    def test_group_overlay_binned_crosshairs(self) -> None:
        rng = np.random.default_rng(5)
        X = [rng.uniform(0, 10, 30) for _ in range(4)]
        Y = [x + rng.normal(0, 0.5, x.size) for x in X]
        res, _ax, _fig, _ = _run(X, Y, bin_count=3, group_overlay=True, group_colors=["k", "0.6"])
        ov = res.group_overlay
        self.assertEqual(ov.mode, "binned")
        self.assertEqual(ov.x.size, 3)
        stacked = np.vstack([res.bins[i].x_mean for i in range(4)])
        np.testing.assert_allclose(ov.x, stacked.mean(axis=0))
        self.assertEqual(len(res.handles.group_error_bars), 2)
        trend = res.handles.group_line
        self.assertEqual(to_rgba(trend.get_color()), to_rgba("k"))
        # 3 points -> 2 shortened segments separated by one NaN
        self.assertEqual(len(trend.get_xdata()), 5)
        self.assertTrue(np.isnan(trend.get_xdata()[2]))

    def test_flat_vectors_with_subject_ids(self) -> None:
        ids = np.repeat([3, 1, 2], 4)
        x = np.tile([1.0, 2.0, 3.0, 4.0], 3)
        y = x * np.repeat([3.0, 1.0, 2.0], 4)
        res, _ax, _fig, _ = _run(x, y, subject_ids=ids)
        self.assertEqual(res.labels, [1, 2, 3])
        np.testing.assert_allclose(res.slope_stats.coefficients["slope"], [1.0, 2.0, 3.0])

        res2, _ax, _fig, _ = _run(FlatWithIds(x=x, y=y, subject_ids=ids))
        self.assertEqual(list(res2.fits.keys()), [1, 2, 3])

    def test_flat_vectors_without_ids_rejected(self) -> None:
        _fig, ax = plt.subplots()
        with self.assertRaises(InvalidInputKind):
            line_plot_multisubject([1.0, 2.0, 3.0], [1.0, 2.0, 3.0], ax=ax)

    def test_show_flags_suppress_geometry(self) -> None:
        X = [[1.0, 2.0, 3.0], [1.0, 2.0, 4.0]]
        Y = [[1.0, 2.0, 2.0], [2.0, 1.0, 0.0]]
        res, ax, _fig, _ = _run(X, Y, show_points=False)
        self.assertEqual(res.handles.point_handles, [])
        self.assertEqual(len(res.handles.line_handles), 2)
        res, ax, _fig, _ = _run(X, Y, LinePlotOptions(show_lines=False))
        self.assertEqual(res.handles.line_handles, [])
        self.assertEqual(len(ax.lines), 2)

    def test_colors_and_markers_cycle(self) -> None:
        X = [[1.0, 2.0, 3.0]] * 5
        Y = [[1.0, 2.0, float(i)] for i in range(5)]
        res, _ax, _fig, _ = _run(X, Y, colors=["r", "b"], marker_symbols="os")
        colors = [to_rgba(h.get_color()) for h in res.handles.line_handles]
        self.assertEqual(colors, [to_rgba(c) for c in ["r", "b", "r", "b", "r"]])
        markers = [h.get_marker() for h in res.handles.point_handles]
        self.assertEqual(markers, ["o", "s", "o", "s", "o"])

    def test_default_palette_runs_between_endpoints(self) -> None:
        X = [[1.0, 2.0, 3.0]] * 3
        Y = [[1.0, 2.0, 4.0], [1.0, 3.0, 2.0], [0.0, 2.0, 5.0]]
        res, _ax, _fig, _ = _run(X, Y)
        first = to_rgba(res.handles.line_handles[0].get_color())
        last = to_rgba(res.handles.line_handles[-1].get_color())
        np.testing.assert_allclose(first[:3], (1.0, 0.5, 0.4))
        np.testing.assert_allclose(last[:3], (0.8, 0.8, 0.4))

    def test_constant_x_subject_has_zero_slope(self) -> None:
        X = [[2.0, 2.0, 2.0], [1.0, 2.0, 3.0], [1.0, 2.0, 3.0]]
        Y = [[1.0, 2.0, 3.0], [1.0, 2.0, 3.0], [1.0, 3.0, 5.0]]
        res, _ax, _fig, _ = _run(X, Y)
        self.assertEqual(res.fits[0].slope, 0.0)
        self.assertAlmostEqual(res.fits[0].intercept, 2.0)
        self.assertTrue(np.isfinite(res.slope_stats.t))


if __name__ == "__main__":
    unittest.main()
