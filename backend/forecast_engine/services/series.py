from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from math import isfinite
from typing import List, Sequence

import pandas as pd

from forecast_engine.exceptions import InvalidParameter


@dataclass(frozen=True)
class SeriesPoint:
    day: date
    value: float


def zero_fill(points: Sequence[SeriesPoint], end: date) -> List[SeriesPoint]:
    """
    Densify a compressed daily series: every calendar day from the first observed
    day through ``end`` gets a point, missing days valued 0.0.
    """
    if not points:
        return []
    s = pd.Series(
        [p.value for p in points],
        index=pd.DatetimeIndex([p.day for p in points], name="ds"),
        dtype=float,
    )
    s = s.groupby(level=0).sum()
    full = pd.date_range(s.index.min(), max(s.index.max(), pd.Timestamp(end)), freq="D")
    s = s.reindex(full).fillna(0.0)
    return [SeriesPoint(day=ts.date(), value=float(v)) for ts, v in s.items()]


def series_values(points: Sequence[SeriesPoint]) -> List[float]:
    """Extract the value axis, rejecting NaN/inf from the source."""
    out: List[float] = []
    for p in points:
        v = float(p.value)
        if not isfinite(v):
            raise InvalidParameter(f"non-finite daily total on {p.day}: {p.value!r}")
        out.append(v)
    return out


__all__ = ["SeriesPoint", "zero_fill", "series_values"]
