# src/multisubject_lines/normalize.py
"""
Input normalization: grouped per-subject sequences or flat vectors + subject ids
-> one list of per-subject (x, y) float arrays.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .core import InvalidInputKind, ShapeMismatch


@dataclass(frozen=True)
class Grouped:
    """One sequence per subject in x and in y."""

    x: Sequence[Any]
    y: Sequence[Any]


@dataclass(frozen=True)
class FlatWithIds:
    """Flat x and y of equal length plus a parallel subject-id vector."""

    x: Sequence[Any]
    y: Sequence[Any]
    subject_ids: Sequence[Any]


@dataclass
class NormalizedInput:
    x: list[np.ndarray]
    y: list[np.ndarray]
    labels: list

    @property
    def n_subjects(self) -> int:
        return len(self.x)


def _to_float(values: Any) -> np.ndarray:
    arr = pd.to_numeric(pd.Series(list(values), dtype=object), errors="coerce")
    return arr.to_numpy(dtype=float)


def _is_grouped(values: Any) -> Optional[bool]:
    """
    True if every element is itself a sequence, False if every element is a
    scalar. None when elements are mixed (neither form).
    """
    if isinstance(values, (str, bytes)):
        return None
    if isinstance(values, np.ndarray) and values.dtype != object:
        return values.ndim == 2
    items = list(values)
    if not items:
        return True
    kinds = {np.ndim(v) if not isinstance(v, (str, bytes)) else -1 for v in items}
    if kinds == {1}:
        return True
    if kinds == {0}:
        return False
    return None


def _group_flat(inp: FlatWithIds) -> NormalizedInput:
    if _is_grouped(inp.x) is not False or _is_grouped(inp.y) is not False:
        raise InvalidInputKind(
            "X and Y should be flat vectors when subject_ids is given, not per-subject sequences."
        )
    ids = list(inp.subject_ids)
    if not (len(inp.x) == len(inp.y) == len(ids)):
        raise ShapeMismatch(
            f"X, Y and subject_ids must have the same length "
            f"(got {len(inp.x)}, {len(inp.y)}, {len(ids)})."
        )

    df = pd.DataFrame({"x": _to_float(inp.x), "y": _to_float(inp.y), "subject": ids})
    df = df.dropna(subset=["subject"])

    xs: list[np.ndarray] = []
    ys: list[np.ndarray] = []
    labels: list = []
    for sid, sub in df.groupby("subject", sort=True):
        labels.append(sid)
        xs.append(sub["x"].to_numpy(dtype=float))
        ys.append(sub["y"].to_numpy(dtype=float))
    return NormalizedInput(x=xs, y=ys, labels=labels)


def _check_grouped(inp: Grouped) -> NormalizedInput:
    if _is_grouped(inp.x) is not True or _is_grouped(inp.y) is not True:
        raise InvalidInputKind(
            "X and Y should be per-subject sequences, one per line to plot "
            "(pass subject_ids to use flat vectors)."
        )
    xs = [_to_float(v) for v in inp.x]
    ys = [_to_float(v) for v in inp.y]
    if len(xs) != len(ys):
        raise ShapeMismatch(f"X has {len(xs)} subjects but Y has {len(ys)}.")
    for i, (xi, yi) in enumerate(zip(xs, ys)):
        if xi.size != yi.size:
            raise ShapeMismatch(
                f"Subject {i} has unequal elements in X ({xi.size}) and Y ({yi.size}). Check data."
            )
    return NormalizedInput(x=xs, y=ys, labels=list(range(len(xs))))


def normalize_inputs(
    x: Union[Grouped, FlatWithIds, Sequence[Any]],
    y: Optional[Sequence[Any]] = None,
    subject_ids: Optional[Sequence[Any]] = None,
) -> NormalizedInput:
    """
    Resolve the accepted input forms into per-subject float arrays.

    - Grouped(x, y), or raw x/y of per-subject sequences with subject_ids=None.
    - FlatWithIds(x, y, ids), or raw flat x/y together with subject_ids.
      Subjects come out in ascending order of their distinct ids.
    """
    if isinstance(x, (Grouped, FlatWithIds)):
        if y is not None:
            raise InvalidInputKind("Pass either a Grouped/FlatWithIds input or raw X and Y, not both.")
        if isinstance(x, FlatWithIds):
            return _group_flat(x)
        if subject_ids is not None:
            raise InvalidInputKind("subject_ids cannot be combined with grouped X and Y.")
        return _check_grouped(x)

    if y is None:
        raise InvalidInputKind("Y is required when X is not a Grouped/FlatWithIds input.")

    if subject_ids is not None:
        return _group_flat(FlatWithIds(x=x, y=y, subject_ids=subject_ids))
    return _check_grouped(Grouped(x=x, y=y))
