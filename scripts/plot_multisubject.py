from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pandas as pd

# Ensure local src/ is used (avoid importing an older installed package)
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

# Use non-interactive backend so script does not block on display (headless / IDE / SSH)
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from multisubject_lines import (  # noqa: E402
    LinePlotOptions,
    PAPER_FIGSIZE_SQUARE,
    apply_paper_style,
    line_plot_multisubject,
    load_options,
    paper_savefig,
    slope_table,
)


def main() -> None:
    p = argparse.ArgumentParser(description="Plot one regression line per subject from a tidy CSV.")
    p.add_argument("--table", required=True, help="Tidy CSV with one row per observation.")
    p.add_argument("--x_col", default="x", help="Column holding the predictor.")
    p.add_argument("--y_col", default="y", help="Column holding the response.")
    p.add_argument("--subject_col", default="subject", help="Column holding the subject id.")
    p.add_argument("--config", default=None, help="Optional YAML file with plot options.")
    p.add_argument("--out", required=True, help="Output PNG path.")
    p.add_argument("--bin_count", type=int, default=None, help="Percentile bins per subject (0=off).")
    p.add_argument("--center", action="store_true", help="Center x and y within each subject.")
    p.add_argument("--group_overlay", action="store_true", help="Draw the group-average overlay.")
    p.add_argument("--no_points", action="store_true", help="Do not draw per-subject points.")
    p.add_argument("--no_lines", action="store_true", help="Do not draw per-subject lines.")
    p.add_argument("--xlabel", default=None)
    p.add_argument("--ylabel", default=None)
    args = p.parse_args()

    table_path = Path(args.table)
    df = pd.read_csv(table_path)
    missing = [c for c in (args.x_col, args.y_col, args.subject_col) if c not in df.columns]
    if missing:
        raise KeyError(f"Columns not found in {table_path.name}: {missing}")

    opts = load_options(Path(args.config)) if args.config else LinePlotOptions()
    overrides: dict = {"subject_ids": df[args.subject_col].tolist()}
    if args.bin_count is not None:
        overrides["bin_count"] = args.bin_count
    if args.center:
        overrides["center"] = True
    if args.group_overlay:
        overrides["group_overlay"] = True
    if args.no_points:
        overrides["show_points"] = False
    if args.no_lines:
        overrides["show_lines"] = False

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    with plt.rc_context(apply_paper_style()):
        fig, ax = plt.subplots(figsize=PAPER_FIGSIZE_SQUARE)
        result = line_plot_multisubject(
            pd.to_numeric(df[args.x_col], errors="coerce").to_numpy(dtype=float),
            pd.to_numeric(df[args.y_col], errors="coerce").to_numpy(dtype=float),
            opts,
            ax=ax,
            **overrides,
        )
        ax.set_xlabel(args.xlabel or args.x_col)
        ax.set_ylabel(args.ylabel or args.y_col)
        fig.tight_layout()
        paper_savefig(fig, out_path)
        plt.close(fig)

    slopes_path = out_path.with_name(f"{out_path.stem}__slopes.csv")
    pd.DataFrame(slope_table(result)).to_csv(slopes_path, index=False)

    st = result.slope_stats
    print(f"Saved: {out_path}")
    print(f"Saved: {slopes_path}")
    print(f"Subjects plotted: {len(result.fits)} / {len(result.labels)} (missing pairs: {st.n_missing})")


if __name__ == "__main__":
    main()
