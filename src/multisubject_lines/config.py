# src/multisubject_lines/config.py
"""
Options for line_plot_multisubject.

Every recognized option is a field of LinePlotOptions and is validated once
when the options object is built. Options can also be read from a YAML
mapping, e.g.:

    bin_count: 5
    center: true
    colors: ["#0072B2", "#E07020", "#009E73"]
    group_colors: ["k", "0.6"]
    marker_symbols: "os^"
    group_overlay: true
"""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import numpy as np
import yaml
from matplotlib.colors import is_color_like
from matplotlib.markers import MarkerStyle


DEFAULT_MARKER_SYMBOLS = "osvd^<>p"

ColorSpec = Union[str, Sequence[float]]


def _as_color_list(value: Any, name: str) -> Optional[tuple]:
    if value is None:
        return None
    # a single color given where a list is expected
    if isinstance(value, str) or (
        isinstance(value, (tuple, list)) and len(value) in (3, 4)
        and all(isinstance(v, (int, float)) for v in value)
    ):
        value = [value]
    out = []
    for c in value:
        c = tuple(float(v) for v in c) if isinstance(c, (list, tuple, np.ndarray)) else c
        if not is_color_like(c):
            raise ValueError(f"{name}: not a valid color specification: {c!r}")
        out.append(c)
    if not out:
        raise ValueError(f"{name} must contain at least one color")
    return tuple(out)


def _as_marker_list(value: Any) -> tuple:
    symbols = list(value) if isinstance(value, str) else [str(v) for v in value]
    if not symbols:
        raise ValueError("marker_symbols must contain at least one symbol")
    for m in symbols:
        try:
            MarkerStyle(m)
        except ValueError as e:
            raise ValueError(f"marker_symbols: unrecognized marker {m!r}") from e
    return tuple(symbols)


@dataclass(frozen=True)
class LinePlotOptions:
    bin_count: int = 0
    subject_ids: Optional[Sequence[Any]] = None
    center: bool = False
    colors: Optional[Sequence[ColorSpec]] = None
    group_colors: Optional[Sequence[ColorSpec]] = None
    marker_symbols: Union[str, Sequence[str]] = DEFAULT_MARKER_SYMBOLS
    show_points: bool = True
    show_lines: bool = True
    group_overlay: bool = False

    def __post_init__(self) -> None:
        try:
            is_int = not isinstance(self.bin_count, bool) and int(self.bin_count) == self.bin_count
        except (TypeError, ValueError):
            is_int = False
        if not is_int:
            raise ValueError(f"bin_count must be an integer, got {self.bin_count!r}")
        if int(self.bin_count) < 0:
            raise ValueError(f"bin_count must be >= 0, got {self.bin_count}")
        object.__setattr__(self, "bin_count", int(self.bin_count))

        for name in ("center", "show_points", "show_lines", "group_overlay"):
            object.__setattr__(self, name, bool(getattr(self, name)))

        if self.subject_ids is not None and isinstance(self.subject_ids, (str, bytes)):
            raise ValueError("subject_ids must be a sequence, not a string")

        object.__setattr__(self, "colors", _as_color_list(self.colors, "colors"))
        gcolors = _as_color_list(self.group_colors, "group_colors")
        if gcolors is not None and len(gcolors) > 2:
            raise ValueError("group_colors takes at most 2 colors (line, fill)")
        object.__setattr__(self, "group_colors", gcolors)
        object.__setattr__(self, "marker_symbols", _as_marker_list(self.marker_symbols))

    @classmethod
    def _check_keys(cls, keys) -> None:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(keys) - known)
        if unknown:
            raise ValueError(f"Unknown option(s): {unknown}. Known: {sorted(known)}")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "LinePlotOptions":
        cls._check_keys(mapping)
        return cls(**dict(mapping))

    def with_overrides(self, overrides: Mapping[str, Any]) -> "LinePlotOptions":
        """Copy with the given fields replaced (re-validated)."""
        self._check_keys(overrides)
        return replace(self, **dict(overrides))


def load_yaml(path: Path) -> Dict[str, Any]:
    with Path(path).open("r", encoding="utf-8") as f:
        obj = yaml.safe_load(f)
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ValueError(f"YAML root must be a mapping: {path}")
    return obj


def load_options(path: Path) -> LinePlotOptions:
    """Read LinePlotOptions from a YAML file (top-level mapping of option names)."""
    return LinePlotOptions.from_mapping(load_yaml(path))
