# src/multisubject_lines/__init__.py
"""
Multi-subject scatter/regression plots.

Modules:
  - core: data structures, error types, OLS fit and figure style
  - config: LinePlotOptions and YAML loading
  - normalize: grouped / flat+ids input normalization
  - preprocessing: within-subject centering and percentile binning
  - stats: slope t-test, pooled correlation, group overlay geometry
  - plotting: colors, markers and drawing primitives
  - pipeline: main routine (line_plot_multisubject)
"""

# Core types and utilities
from .core import (
    BinnedSeries,
    FitResult,
    GroupOverlay,
    InsufficientSubjects,
    InvalidInputKind,
    LinePlotHandles,
    LinePlotResult,
    MultiSubjectPlotError,
    PAPER_FIGSIZE_SQUARE,
    ShapeMismatch,
    SlopeStats,
    SubjectShapeMismatch,
    apply_paper_style,
    fit_ols,
    paper_savefig,
)

# Options
from .config import (
    DEFAULT_MARKER_SYMBOLS,
    LinePlotOptions,
    load_options,
)

# Inputs and preprocessing
from .normalize import (
    FlatWithIds,
    Grouped,
    NormalizedInput,
    normalize_inputs,
)
from .preprocessing import (
    bin_subject,
    center_series,
)

# Statistics
from .stats import (
    compute_slope_stats,
    format_summary,
    pooled_correlation,
    slope_ttest,
)

# Plotting
from .plotting import custom_colors

# Pipeline
from .pipeline import (
    line_plot_multisubject,
    slope_table,
)

__all__ = [
    # Core
    "BinnedSeries",
    "FitResult",
    "GroupOverlay",
    "InsufficientSubjects",
    "InvalidInputKind",
    "LinePlotHandles",
    "LinePlotResult",
    "MultiSubjectPlotError",
    "PAPER_FIGSIZE_SQUARE",
    "ShapeMismatch",
    "SlopeStats",
    "SubjectShapeMismatch",
    "apply_paper_style",
    "fit_ols",
    "paper_savefig",
    # Options
    "DEFAULT_MARKER_SYMBOLS",
    "LinePlotOptions",
    "load_options",
    # Inputs and preprocessing
    "FlatWithIds",
    "Grouped",
    "NormalizedInput",
    "normalize_inputs",
    "bin_subject",
    "center_series",
    # Statistics
    "compute_slope_stats",
    "format_summary",
    "pooled_correlation",
    "slope_ttest",
    # Plotting
    "custom_colors",
    # Pipeline
    "line_plot_multisubject",
    "slope_table",
]
